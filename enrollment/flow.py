"""Enrollment wizard state machine.

Steps: program_selection -> student_info -> course_selection -> payment_proof -> confirmation.
The flow is linear. `confirmation` is terminal and only reached through a
successful `submit` from `payment_proof`. Every operation returns a result
object; the caller persists `result.state`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from django.utils import timezone

from catalog.pricing import compute_price
from catalog.reference import Catalog
from documents.store import StoreUnavailable
from payments.verification import PaymentProof, PaymentVerifier, Verdict
from utils.i18n import RequestContext

from .serializers import (
    STEP_SERIALIZERS,
    PaymentProofSerializer,
    first_error_field,
    flatten_errors,
    step_fields,
)
from .steps import (  # noqa: F401
    CONFIRMATION,
    COURSE_SELECTION,
    PAYMENT_PROOF,
    PROGRAM_SELECTION,
    STEPS,
    STUDENT_INFO,
)


logger = logging.getLogger(__name__)


# Applied in this order so a cascade never wipes a value set in the same update.
FORM_FIELDS = (
    'school_level',
    'program',
    'selected_courses',
    'full_name',
    'date_of_birth',
    'email',
    'phone',
    'address',
    'gender',
    'coupon_code',
)
PRICE_FIELDS = ('school_level', 'program', 'selected_courses')
CASCADES = {
    'school_level': ('program', 'selected_courses'),
    'program': ('selected_courses',),
}


@dataclass
class FlowState:
    step: int = PROGRAM_SELECTION
    values: Dict[str, Any] = field(default_factory=dict)
    calculated_price: float = 0.0

    @property
    def step_name(self) -> str:
        return STEPS[self.step]

    def copy(self) -> 'FlowState':
        return replace(self, values=dict(self.values))


@dataclass
class StepResult:
    ok: bool
    state: FlowState
    code: str = ''
    message: str = ''
    errors: Dict[str, List[str]] = field(default_factory=dict)
    focus_field: Optional[str] = None


@dataclass
class SubmitResult(StepResult):
    verdict: Optional[Verdict] = None
    registration_id: str = ''
    registration: Dict[str, Any] = field(default_factory=dict)


def _clean_value(name: str, value: Any) -> Any:
    if name == 'selected_courses':
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            out: List[Any] = []
            for v in value:
                v = v.strip() if isinstance(v, str) else v
                if v not in out:
                    out.append(v)
            return out
        return value
    if value is None:
        return ''
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return value


def _course_ids(values: Mapping[str, Any]) -> List[str]:
    courses = values.get('selected_courses')
    if not isinstance(courses, list):
        return []
    return [c for c in courses if isinstance(c, str)]


def recompute_price(state: FlowState, catalog: Catalog) -> float:
    v = state.values
    state.calculated_price = compute_price(
        catalog,
        v.get('school_level') or None,
        v.get('program') or None,
        _course_ids(v),
    )
    return state.calculated_price


def validate_step(step: int, values: Mapping[str, Any]) -> Tuple[Dict[str, List[str]], Optional[str]]:
    serializer_class = STEP_SERIALIZERS.get(step)
    if serializer_class is None:
        return {}, None
    declared = step_fields(step)
    data = {k: values[k] for k in declared if k in values and values[k] not in ('', None)}
    if step == COURSE_SELECTION and 'selected_courses' in values:
        data['selected_courses'] = values['selected_courses']
    serializer = serializer_class(data=data)
    if serializer.is_valid():
        return {}, None
    errors = flatten_errors(serializer.errors)
    return errors, first_error_field(errors, declared)


def update_fields(state: FlowState, changes: Mapping[str, Any], catalog: Catalog, ctx: RequestContext) -> StepResult:
    """Merge field values into the form, applying cascades and recomputing the price."""
    if state.step == CONFIRMATION:
        return StepResult(
            ok=False,
            state=state,
            code='step_locked',
            message=ctx.text('step_locked', 'This registration is already complete.'),
        )

    new = state.copy()
    price_touched = False
    for name in FORM_FIELDS:
        if name not in changes:
            continue
        value = _clean_value(name, changes[name])
        if new.values.get(name) == value:
            continue
        new.values[name] = value
        for dependent in CASCADES.get(name, ()):
            if dependent in changes:
                continue
            if new.values.get(dependent):
                logger.debug("clearing %s after %s changed", dependent, name)
            new.values[dependent] = [] if dependent == 'selected_courses' else ''
        if name in PRICE_FIELDS:
            price_touched = True

    if price_touched:
        recompute_price(new, catalog)
    return StepResult(ok=True, state=new)


def go_next(state: FlowState, catalog: Catalog, ctx: RequestContext) -> StepResult:
    if state.step == CONFIRMATION:
        return StepResult(ok=False, state=state, code='step_locked',
                          message=ctx.text('step_locked', 'This registration is already complete.'))
    if state.step == PAYMENT_PROOF:
        return StepResult(ok=False, state=state, code='submission_required',
                          message=ctx.text('step_not_forward', 'Submit your payment proof to complete the registration.'))

    errors, focus = validate_step(state.step, state.values)
    if errors:
        return StepResult(
            ok=False,
            state=state,
            code='validation_error',
            message=ctx.text('validation_failed', 'Please check the highlighted fields and try again.'),
            errors=errors,
            focus_field=focus,
        )

    new = state.copy()
    new.step += 1
    recompute_price(new, catalog)
    return StepResult(ok=True, state=new)


def go_previous(state: FlowState, ctx: RequestContext) -> StepResult:
    if state.step == CONFIRMATION:
        return StepResult(ok=False, state=state, code='step_locked',
                          message=ctx.text('step_locked', 'This registration is already complete.'))
    if state.step == PROGRAM_SELECTION:
        return StepResult(ok=False, state=state, code='step_first',
                          message=ctx.text('step_first', 'You are already on the first step.'))
    new = state.copy()
    new.step -= 1
    return StepResult(ok=True, state=new)


def build_registration(
    state: FlowState,
    proof: PaymentProof,
    verdict: Verdict,
    *,
    uid: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Registration document as written to the `registrations` collection."""
    v = state.values
    doc: Dict[str, Any] = {
        'studentInfo': {
            'fullName': v.get('full_name') or '',
            'dateOfBirth': v.get('date_of_birth') or '',
            'email': v.get('email') or '',
            'phone': v.get('phone') or '',
            'address': v.get('address') or '',
            'gender': v.get('gender') or '',
        },
        'programSelection': {
            'schoolLevel': v.get('school_level') or '',
            'program': v.get('program') or '',
            'selectedCourses': _course_ids(v),
        },
        'paymentProof': proof.to_document(),
        'calculatedPrice': state.calculated_price,
        'paymentVerified': bool(verdict.is_valid),
        'paymentVerificationDetails': verdict.to_document(),
        'registrationDate': now or timezone.now(),
    }
    coupon = (v.get('coupon_code') or '').strip()
    if coupon:
        doc['couponCode'] = coupon
    if uid:
        doc['firebaseUserId'] = uid
    return doc


# Returns (account name, account number), or None when the method does not exist.
AccountLookup = Callable[[str], Optional[Tuple[str, str]]]


def submit(
    state: FlowState,
    proof_data: Mapping[str, Any],
    *,
    catalog: Catalog,
    verifier: PaymentVerifier,
    save_registration: Callable[[Dict[str, Any]], str],
    ctx: RequestContext,
    account_lookup: Optional[AccountLookup] = None,
) -> SubmitResult:
    """Verify the payment proof and, when valid, persist the registration.

    The caller holds the session's submission claim for the duration of the call.
    """
    if state.step != PAYMENT_PROOF:
        return SubmitResult(ok=False, state=state, code='invalid_step',
                            message=ctx.text('submit_wrong_step', 'Payment proof can only be submitted on the payment step.'))

    for step in (PROGRAM_SELECTION, STUDENT_INFO, COURSE_SELECTION):
        errors, focus = validate_step(step, state.values)
        if errors:
            # Back to the first incomplete step; nothing is verified or saved.
            back = state.copy()
            back.step = step
            return SubmitResult(
                ok=False,
                state=back,
                code='validation_error',
                message=ctx.text('validation_failed', 'Please check the highlighted fields and try again.'),
                errors=errors,
                focus_field=focus,
            )

    serializer = PaymentProofSerializer(data=dict(proof_data or {}))
    if not serializer.is_valid():
        errors = flatten_errors(serializer.errors)
        return SubmitResult(
            ok=False,
            state=state,
            code='validation_error',
            message=ctx.text('validation_failed', 'Please check the highlighted fields and try again.'),
            errors=errors,
            focus_field=first_error_field(errors, tuple(PaymentProofSerializer().fields.keys())),
        )
    data = dict(serializer.validated_data)

    new = state.copy()
    if 'coupon_code' in data:
        new.values['coupon_code'] = (data.get('coupon_code') or '').strip()
    expected_amount = recompute_price(new, catalog)

    account_name, account_number = '', ''
    if account_lookup is not None:
        account = account_lookup(data['payment_method'])
        if account is None:
            return SubmitResult(
                ok=False,
                state=state,
                code='validation_error',
                message=ctx.text('validation_failed', 'Please check the highlighted fields and try again.'),
                errors={'payment_method': ['Unknown payment method.']},
                focus_field='payment_method',
            )
        account_name, account_number = account

    proof = PaymentProof.from_dict({
        **data,
        'expected_account_name': account_name,
        'expected_account_number': account_number,
    })
    verdict = verifier.verify(proof, expected_amount)
    logger.info(
        "payment verification type=%s method=%s amount=%s valid=%s",
        proof.type, proof.payment_method, expected_amount, verdict.is_valid,
    )

    if not verdict.is_valid:
        return SubmitResult(
            ok=False,
            state=new,
            code='payment_not_verified',
            message=verdict.message or ctx.text('payment_rejected', 'We could not verify your payment.'),
            verdict=verdict,
        )

    doc = build_registration(new, proof, verdict, uid=ctx.uid)
    try:
        registration_id = save_registration(doc)
    except StoreUnavailable:
        logger.exception("saving registration failed")
        return SubmitResult(
            ok=False,
            state=new,
            code='registration_save_failed',
            message=ctx.text(
                'registration_save_failed',
                'Your payment was verified but the registration could not be saved. Please try again.',
            ),
            verdict=verdict,
        )

    new.step = CONFIRMATION
    return SubmitResult(
        ok=True,
        state=new,
        message=ctx.text('payment_verified', 'Payment verified. Your registration is complete.'),
        verdict=verdict,
        registration_id=registration_id,
        registration=doc,
    )
