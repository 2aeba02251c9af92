from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from catalog.records import Program, registration_participants
from catalog.reference import Catalog, get_catalog
from utils.i18n import DEFAULT_LANGUAGE


GENDER_BUCKETS = ('male', 'female')


@dataclass(frozen=True)
class ProgramCount:
    program_id: str
    label: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'program_id': self.program_id, 'label': self.label, 'count': self.count}


@dataclass(frozen=True)
class DashboardStats:
    total_registrations: int = 0
    total_participants: int = 0
    verified_registrations: int = 0
    program_counts: Tuple[ProgramCount, ...] = ()
    gender: Dict[str, int] = field(default_factory=lambda: {g: 0 for g in GENDER_BUCKETS})

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_registrations': self.total_registrations,
            'total_participants': self.total_participants,
            'verified_registrations': self.verified_registrations,
            'program_counts': [pc.to_dict() for pc in self.program_counts],
            'gender': dict(self.gender),
        }


def resolve_program_label(
    program_id: str,
    programs_by_id: Mapping[str, Program],
    lang: Optional[str],
    catalog: Catalog,
) -> str:
    """Active locale, then default locale, then the catalog label, then the raw id."""
    program = programs_by_id.get(program_id)
    if program is not None:
        translations = program.record.translations
        for locale in (lang, DEFAULT_LANGUAGE):
            label = (translations.get(locale) or {}).get('label') if locale else None
            if label:
                return str(label)
    return catalog.program_label(program_id) or program_id


def compute_stats(
    registrations: Iterable[Tuple[str, Mapping[str, Any]]],
    programs: Iterable[Program],
    lang: Optional[str] = None,
    catalog: Optional[Catalog] = None,
) -> DashboardStats:
    """Full pass over the current registrations. Nothing is carried over between calls."""
    catalog = catalog or get_catalog()
    programs_by_id = {p.id: p for p in programs}

    counts: Dict[str, int] = {}
    gender = {g: 0 for g in GENDER_BUCKETS}
    total = 0
    participants_total = 0
    verified = 0

    for _doc_id, data in registrations:
        total += 1
        if data.get('paymentVerified'):
            verified += 1
        for participant in registration_participants(data):
            participants_total += 1
            if participant.program_id:
                counts[participant.program_id] = counts.get(participant.program_id, 0) + 1
            if participant.gender in gender:
                gender[participant.gender] += 1

    program_counts: List[ProgramCount] = [
        ProgramCount(
            program_id=pid,
            label=resolve_program_label(pid, programs_by_id, lang, catalog),
            count=n,
        )
        for pid, n in counts.items()
    ]
    program_counts.sort(key=lambda pc: (-pc.count, pc.program_id))

    return DashboardStats(
        total_registrations=total,
        total_participants=participants_total,
        verified_registrations=verified,
        program_counts=tuple(program_counts),
        gender=gender,
    )
