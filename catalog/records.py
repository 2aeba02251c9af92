from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, List, Mapping, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from utils.i18n import DEFAULT_LANGUAGE

from .translations import (
    PAYMENT_METHOD_FIELDS,
    PROGRAM_FIELDS,
    CanonicalRecord,
    normalize,
)


logger = logging.getLogger(__name__)


PROGRAM_CATEGORIES = ('daycare', 'quran_kids', 'arabic_women', 'general_islamic_studies')
DISCOUNT_TYPES = ('percentage', 'fixed_amount')


def _as_float(val: Any, default: float = 0.0) -> float:
    try:
        return float(val)
    except (TypeError, ValueError):
        return default


def coerce_datetime(val: Any) -> Optional[datetime]:
    """Best effort conversion of store timestamps (Firestore datetimes, ISO strings)."""
    if val is None or val == '':
        return None
    if isinstance(val, datetime):
        dt = val
    elif hasattr(val, 'to_datetime'):
        try:
            dt = val.to_datetime()
        except Exception:
            return None
    elif isinstance(val, str):
        dt = parse_datetime(val.strip())
        if dt is None:
            d = parse_date(val.strip())
            if d is None:
                return None
            dt = datetime(d.year, d.month, d.day)
    else:
        return None
    if timezone.is_naive(dt):
        dt = dt.replace(tzinfo=dt_timezone.utc)
    return dt


@dataclass(frozen=True)
class Program:
    record: CanonicalRecord

    @classmethod
    def from_document(cls, raw: Mapping[str, Any], doc_id: Optional[str] = None) -> 'Program':
        return cls(record=normalize(raw, 'id', DEFAULT_LANGUAGE, PROGRAM_FIELDS, doc_id=doc_id))

    @property
    def id(self) -> str:
        return self.record.record_id

    @property
    def price(self) -> float:
        return _as_float(self.record.attributes.get('price'))

    @property
    def category(self) -> str:
        return str(self.record.attributes.get('category') or '')

    @property
    def is_child_program(self) -> bool:
        return bool(self.record.attributes.get('isChildProgram'))

    def label(self, lang: Optional[str] = None) -> str:
        return str(self.record.text('label', lang) or self.id)

    def to_document(self) -> Dict[str, Any]:
        return self.record.to_document()

    def to_public(self, lang: Optional[str] = None) -> Dict[str, Any]:
        attrs = self.record.attributes
        content = self.record.localized(lang)
        return {
            'id': self.id,
            'price': self.price,
            'category': self.category,
            'age_range': attrs.get('ageRange') or '',
            'duration': attrs.get('duration') or '',
            'schedule': attrs.get('schedule') or '',
            'is_child_program': self.is_child_program,
            'label': self.label(lang),
            'description': content.get('description') or self.record.text('description') or '',
            'terms_and_conditions': content.get('termsAndConditions') or self.record.text('termsAndConditions') or '',
        }


@dataclass(frozen=True)
class PaymentMethod:
    record: CanonicalRecord

    @classmethod
    def from_document(cls, raw: Mapping[str, Any], doc_id: Optional[str] = None) -> 'PaymentMethod':
        return cls(record=normalize(raw, 'value', DEFAULT_LANGUAGE, PAYMENT_METHOD_FIELDS, doc_id=doc_id))

    @property
    def value(self) -> str:
        return self.record.record_id

    @property
    def account_number(self) -> str:
        return str(self.record.attributes.get('accountNumber') or '')

    def label(self, lang: Optional[str] = None) -> str:
        return str(self.record.text('label', lang) or self.value)

    def account_name(self, lang: Optional[str] = None) -> str:
        return str(self.record.text('accountName', lang) or '')

    def to_document(self) -> Dict[str, Any]:
        return self.record.to_document()

    def to_public(self, lang: Optional[str] = None) -> Dict[str, Any]:
        attrs = self.record.attributes
        return {
            'value': self.value,
            'label': self.label(lang),
            'account_name': self.account_name(lang),
            'account_number': self.account_number,
            'additional_instructions': self.record.text('additionalInstructions', lang) or '',
            'logo_placeholder': attrs.get('logoPlaceholder') or '',
            'data_ai_hint': attrs.get('dataAiHint') or '',
        }


@dataclass(frozen=True)
class Coupon:
    id: str
    coupon_code: str
    discount_type: str
    discount_value: float
    description: str = ''
    expiry_date: Optional[datetime] = None
    is_active: bool = True

    @classmethod
    def from_document(cls, raw: Mapping[str, Any], doc_id: Optional[str] = None) -> 'Coupon':
        data = dict(raw or {})
        dtype = str(data.get('discountType') or 'percentage')
        if dtype not in DISCOUNT_TYPES:
            logger.warning("coupon %r: unknown discount type %r", doc_id or data.get('id'), dtype)
        return cls(
            id=str(data.get('id') or doc_id or ''),
            coupon_code=str(data.get('couponCode') or ''),
            discount_type=dtype,
            discount_value=max(0.0, _as_float(data.get('discountValue'))),
            description=str(data.get('description') or ''),
            expiry_date=coerce_datetime(data.get('expiryDate')),
            is_active=bool(data.get('isActive', True)),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expiry_date is None:
            return False
        return self.expiry_date < (now or timezone.now())

    def to_document(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'couponCode': self.coupon_code,
            'discountType': self.discount_type,
            'discountValue': self.discount_value,
            'description': self.description,
            'expiryDate': self.expiry_date,
            'isActive': self.is_active,
        }

    def to_public(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'coupon_code': self.coupon_code,
            'discount_type': self.discount_type,
            'discount_value': self.discount_value,
            'description': self.description,
            'expiry_date': self.expiry_date.isoformat() if self.expiry_date else None,
            'is_active': self.is_active,
            'is_expired': self.is_expired(),
        }


@dataclass(frozen=True)
class Participant:
    program_id: str
    gender: str


def registration_participants(raw: Mapping[str, Any]) -> List[Participant]:
    """Participants of a registration document.

    Multi-participant documents carry a `participants` list; single-student ones
    carry `studentInfo` + `programSelection`.
    """
    data = dict(raw or {})
    out: List[Participant] = []
    participants = data.get('participants')
    if isinstance(participants, list):
        for p in participants:
            if not isinstance(p, Mapping):
                continue
            info = p.get('participantInfo') if isinstance(p.get('participantInfo'), Mapping) else {}
            out.append(Participant(
                program_id=str(p.get('programId') or '').strip(),
                gender=str(info.get('gender') or '').strip().lower(),
            ))
        return out

    selection = data.get('programSelection') if isinstance(data.get('programSelection'), Mapping) else {}
    student = data.get('studentInfo') if isinstance(data.get('studentInfo'), Mapping) else {}
    program_id = str(selection.get('program') or '').strip()
    if program_id or student:
        out.append(Participant(program_id=program_id, gender=str(student.get('gender') or '').strip().lower()))
    return out


def serialize_registration(doc_id: str, raw: Mapping[str, Any]) -> Dict[str, Any]:
    data = dict(raw or {})
    student = data.get('studentInfo') if isinstance(data.get('studentInfo'), Mapping) else {}
    selection = data.get('programSelection') if isinstance(data.get('programSelection'), Mapping) else {}
    proof = data.get('paymentProof') if isinstance(data.get('paymentProof'), Mapping) else {}
    reg_date = coerce_datetime(data.get('registrationDate'))
    if reg_date is None:
        logger.warning("registration %r has no valid registrationDate", doc_id)
        reg_date = timezone.now()
    participants = registration_participants(data)
    return {
        'id': doc_id,
        'student': {
            'full_name': student.get('fullName') or '',
            'email': student.get('email') or '',
            'phone': student.get('phone') or '',
            'date_of_birth': str(student.get('dateOfBirth') or ''),
            'gender': student.get('gender') or '',
        },
        'selection': {
            'school_level': selection.get('schoolLevel') or '',
            'program': selection.get('program') or '',
            'selected_courses': list(selection.get('selectedCourses') or []),
        },
        'payment_type': proof.get('type') or '',
        'payment_method': proof.get('paymentMethod') or '',
        'participants_count': len(participants),
        'calculated_price': _as_float(data.get('calculatedPrice')),
        'payment_verified': bool(data.get('paymentVerified')),
        'payment_verification_details': data.get('paymentVerificationDetails') or {},
        'coupon_code': data.get('couponCode') or '',
        'registration_date': reg_date.isoformat(),
    }
