"""Records for the GIR (GloBE Information Return) practice form.

Section 1 is the general filing information, section 2 the entity structure
and section 3 the per-jurisdiction computation entries.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from model.GloBEData import JurisdictionCalcEntry
from model.records import record_from_dict, normalise_keys

ENTITY_TYPES = ('UPE', 'CE', 'PE', 'JV', 'MOCE')
FILING_TYPES = ('ORIGINAL', 'AMENDED')
GIR_JURISDICTIONS = ('GB', 'US', 'FR', 'DE', 'IE', 'JP', 'NL', 'CH', 'SG', 'AU')
GIR_CURRENCIES = ('EUR', 'USD', 'GBP', 'JPY', 'CHF')


@dataclass
class GeneralInformation:
    # 1.1 MNE group
    mne_group_name: str = ''
    upe_legal_name: str = ''
    upe_jurisdiction: str = ''
    upe_tax_id: str = ''
    lei: str = ''
    # 1.2 Reporting period
    fiscal_year_start: str = ''
    fiscal_year_end: str = ''
    reporting_currency: str = 'EUR'
    first_filing: bool = True
    consolidated_revenue: float = 0
    # 1.3 Filing entity
    dfe_name: str = ''
    dfe_jurisdiction: str = ''
    dfe_tax_id: str = ''
    filing_type: str = 'ORIGINAL'
    amendment_reason: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeneralInformation':
        return record_from_dict(cls, data)


@dataclass
class EntityData:
    id: str = ''
    name: str = ''
    internal_id: str = ''
    jurisdiction: str = ''
    tax_id: str = ''
    direct_parent: str = ''
    ownership_pct: float = 100
    ownership_type: str = 'DIRECT'
    controlling_interest: bool = True
    entity_type: str = 'CE'
    is_excluded: bool = False
    exclusion_reason: str = ''
    pope_status: bool = False
    investment_entity: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EntityData':
        return record_from_dict(cls, data)


@dataclass(frozen=True)
class GIRValidationStatus:
    jurisdiction_match: bool
    s2_count: int
    s3_count: int


@dataclass
class CaseStudy:
    name: str
    section1: GeneralInformation
    section2: List[EntityData] = field(default_factory=list)
    section3: List[JurisdictionCalcEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CaseStudy':
        values = normalise_keys(data)
        return cls(
            name=values.get('name', ''),
            section1=GeneralInformation.from_dict(values.get('section1', {})),
            section2=[EntityData.from_dict(e) for e in values.get('section2', [])],
            section3=[JurisdictionCalcEntry.from_dict(j) for j in values.get('section3', [])],
        )
