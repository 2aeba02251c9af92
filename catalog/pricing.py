from __future__ import annotations

from typing import Iterable, Optional

from .reference import Catalog


def compute_price(
    catalog: Catalog,
    school_level: Optional[str],
    program_id: Optional[str],
    selected_course_ids: Optional[Iterable[str]],
) -> float:
    """Total = program base price + prices of the selected courses that belong to it.

    An unknown (level, program) pair prices at 0 so a half-edited selection never
    blocks the form. Course ids that do not resolve against the program add 0.
    """
    if not school_level or not program_id:
        return 0
    program = catalog.find_program(school_level, program_id)
    if program is None:
        return 0

    total = program.base_price
    seen = set()
    for cid in selected_course_ids or []:
        cid = str(cid or '').strip()
        if not cid or cid in seen:
            continue
        seen.add(cid)
        course = program.find_course(cid)
        if course is not None:
            total += course.price
    return total
