"""Records for the Designated Filing Entity (DFE) assessment."""

from dataclasses import dataclass
from typing import Any, Dict

from model.records import record_from_dict

# Pillar Two implementation status of a candidate's jurisdiction
FULL = 'FULL'
PARTIAL = 'PARTIAL'
ANNOUNCED = 'ANNOUNCED'
NONE = 'NONE'

# Recommendation status
RECOMMENDED = 'RECOMMENDED'
ALTERNATIVE = 'ALTERNATIVE'
NOT_RECOMMENDED = 'NOT RECOMMENDED'


@dataclass
class MNEInfo:
    mne_group_name: str = ''
    upe_jurisdiction: str = ''
    upe_local_filing: bool = False
    total_jurisdictions: int = 0
    fiscal_year: int = 2024

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MNEInfo':
        return record_from_dict(cls, data)


@dataclass
class DFECandidate:
    id: str = ''
    entity_name: str = ''
    jurisdiction: str = ''
    is_upe: bool = False
    pillar_two_status: str = FULL
    tax_team_size: int = 1
    systems_capability: str = 'LOCAL_SYSTEM'
    advisor_support: str = 'NONE'
    data_availability: int = 3
    has_gir_experience: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DFECandidate':
        values = dict(data or {})
        # camelCase 'isUPE' / 'hasGIRExperience' do not survive a plain snake conversion
        if 'isUPE' in values:
            values['is_upe'] = values.pop('isUPE')
        if 'hasGIRExperience' in values:
            values['has_gir_experience'] = values.pop('hasGIRExperience')
        return record_from_dict(cls, values)


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: DFECandidate
    score: int
    status: str
