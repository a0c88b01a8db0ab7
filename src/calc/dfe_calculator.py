from typing import Dict, List, Sequence, Tuple

from model.DFEData import (
    ALTERNATIVE,
    FULL,
    NOT_RECOMMENDED,
    PARTIAL,
    RECOMMENDED,
    DFECandidate,
    MNEInfo,
    ScoredCandidate,
)
from tax.year_table import load_reference

DFE_CASE_STUDY_FILE = 'dfe-case-study.json'

PILLAR_TWO_STATUS_SCORES: Dict[str, int] = {'FULL': 20, 'PARTIAL': 10, 'ANNOUNCED': 5, 'NONE': 0}
SYSTEMS_CAPABILITY_SCORES: Dict[str, int] = {'ERP_INTEGRATED': 14, 'SAP': 11, 'LOCAL_SYSTEM': 7, 'LIMITED': 3}
ADVISOR_SUPPORT_SCORES: Dict[str, int] = {'BIG4': 10, 'MID_TIER': 7, 'LOCAL_FIRM': 4, 'NONE': 0}

# (minimum team size, points), largest first
TEAM_SIZE_SCORES = ((8, 18), (5, 14), (3, 10), (1, 5))

UPE_SCORE = 25
GIR_EXPERIENCE_SCORE = 10
NO_GIR_EXPERIENCE_SCORE = 5
MAX_SCORE = 100

RECOMMENDED_MIN_SCORE = 70
ALTERNATIVE_MIN_SCORE = 50


def calculate_score(candidate: DFECandidate) -> int:
    """Suitability of an entity to act as Designated Filing Entity, 0 to 100."""
    score = 0
    if candidate.is_upe:
        score += UPE_SCORE
    score += PILLAR_TWO_STATUS_SCORES.get(candidate.pillar_two_status, 0)

    size = candidate.tax_team_size or 0
    score += next((points for minimum, points in TEAM_SIZE_SCORES if size >= minimum), 0)

    score += SYSTEMS_CAPABILITY_SCORES.get(candidate.systems_capability, 0)
    score += ADVISOR_SUPPORT_SCORES.get(candidate.advisor_support, 0)
    score += GIR_EXPERIENCE_SCORE if candidate.has_gir_experience else NO_GIR_EXPERIENCE_SCORE
    return min(MAX_SCORE, score)


def determine_recommendation_status(score: int, pillar_two_status: str, is_top_scorer: bool) -> str:
    implemented = pillar_two_status in (FULL, PARTIAL)
    if is_top_scorer and score >= RECOMMENDED_MIN_SCORE and implemented:
        return RECOMMENDED
    if score >= ALTERNATIVE_MIN_SCORE:
        return ALTERNATIVE
    return NOT_RECOMMENDED


def rank_candidates(candidates: Sequence[DFECandidate]) -> List[ScoredCandidate]:
    """Candidates by descending score; ties keep input order.

    Only the first ranked candidate can be RECOMMENDED.
    """
    scored = sorted(((c, calculate_score(c)) for c in candidates), key=lambda pair: pair[1], reverse=True)
    return [
        ScoredCandidate(
            candidate=candidate,
            score=score,
            status=determine_recommendation_status(score, candidate.pillar_two_status, index == 0),
        )
        for index, (candidate, score) in enumerate(scored)
    ]


def load_dfe_case_study() -> Tuple[MNEInfo, List[DFECandidate]]:
    """The GlobalTech Manufacturing worked example."""
    data = load_reference(DFE_CASE_STUDY_FILE)
    return MNEInfo.from_dict(data["mneInfo"]), [DFECandidate.from_dict(c) for c in data["candidates"]]
