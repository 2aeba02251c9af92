from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Course:
    value: str
    label: str
    price: float


@dataclass(frozen=True)
class CatalogProgram:
    value: str
    label: str
    base_price: float
    courses: Tuple[Course, ...] = ()

    def find_course(self, course_id: str) -> Optional[Course]:
        for c in self.courses:
            if c.value == course_id:
                return c
        return None


@dataclass(frozen=True)
class SchoolLevel:
    value: str
    label: str
    programs: Tuple[CatalogProgram, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Catalog:
    """Read-only school level -> program -> course reference data."""
    levels: Tuple[SchoolLevel, ...]

    def level(self, value: str) -> Optional[SchoolLevel]:
        for lvl in self.levels:
            if lvl.value == value:
                return lvl
        return None

    def find_program(self, school_level: str, program_id: str) -> Optional[CatalogProgram]:
        lvl = self.level((school_level or '').strip())
        if lvl is None:
            return None
        pid = (program_id or '').strip()
        for p in lvl.programs:
            if p.value == pid:
                return p
        return None

    def program_label(self, program_id: str) -> Optional[str]:
        """Label of a program by id regardless of level (first match)."""
        for lvl in self.levels:
            for p in lvl.programs:
                if p.value == program_id:
                    return p.label
        return None

    def as_dict(self) -> List[Dict]:
        return [
            {
                'value': lvl.value,
                'label': lvl.label,
                'programs': [
                    {
                        'value': p.value,
                        'label': p.label,
                        'base_price': p.base_price,
                        'courses': [
                            {'value': c.value, 'label': c.label, 'price': c.price}
                            for c in p.courses
                        ],
                    }
                    for p in lvl.programs
                ],
            }
            for lvl in self.levels
        ]


DEFAULT_CATALOG = Catalog(
    levels=(
        SchoolLevel(
            value='high_school',
            label='High School',
            programs=(
                CatalogProgram(
                    value='grade_9',
                    label='Grade 9',
                    base_price=1000,
                    courses=(
                        Course(value='math_9', label='Mathematics 9', price=100),
                        Course(value='science_9', label='Science 9', price=120),
                        Course(value='english_9', label='English 9', price=90),
                    ),
                ),
            ),
        ),
        SchoolLevel(
            value='university',
            label='University',
            programs=(
                CatalogProgram(value='computer_science', label='B.Sc. Computer Science', base_price=5000),
            ),
        ),
        SchoolLevel(
            value='vocational',
            label='Vocational School',
            programs=(
                CatalogProgram(value='culinary_arts', label='Culinary Arts Certificate', base_price=3000),
            ),
        ),
    ),
)


def get_catalog() -> Catalog:
    return DEFAULT_CATALOG
