import logging
from typing import Any, Dict, Optional

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from catalog.records import serialize_registration
from catalog.reference import get_catalog
from documents.repositories import create_registration, fetch_payment_method
from documents.store import StoreUnavailable
from payments.datauri import DataUriError, encode_upload
from payments.verification import PaymentVerifier
from utils.drf_auth import optional_firebase_identity
from utils.errors import error_response
from utils.i18n import RequestContext, request_context

from . import flow
from .models import EnrollmentSession


logger = logging.getLogger(__name__)

# HTTP status for flow results that were refused because of the session's step.
_STATE_CONFLICTS = ('step_locked', 'step_first', 'submission_required', 'invalid_step')


# Columns a finished submission writes.
_SUBMIT_FIELDS = [
    'step',
    'form_data_encrypted',
    'calculated_price',
    'is_submitting',
    'registration_id',
    'registration',
    'last_message',
    'last_verdict',
    'updated_at',
]


def get_verifier() -> PaymentVerifier:
    return PaymentVerifier()


def _context(request) -> RequestContext:
    identity = optional_firebase_identity(request)
    if identity is None:
        return request_context(request)
    return request_context(request, uid=identity.uid, email=identity.email)


def _serialize_session(s: EnrollmentSession) -> Dict[str, Any]:
    return {
        'id': str(s.id),
        'step': s.step,
        'step_name': s.step_name,
        'steps': list(flow.STEPS),
        'values': s.form_data,
        'calculated_price': s.calculated_price,
        'is_submitting': s.is_submitting,
        'registration_id': s.registration_id or None,
        'registration': s.registration or None,
        'last_message': s.last_message,
        'last_verdict': s.last_verdict or None,
        'expires_at': s.expires_at.isoformat() if s.expires_at else None,
    }


def _load_session(session_id, ctx: RequestContext):
    """Return (session, error_response)."""
    try:
        s = EnrollmentSession.objects.get(id=session_id)
    except EnrollmentSession.DoesNotExist:
        return None, error_response(
            ctx.text('session_not_found', 'Enrollment session not found.'),
            status_code=404,
            code='not_found',
        )
    if s.is_expired():
        return None, error_response('Enrollment session expired.', status_code=410, code='session_expired')
    return s, None


def _step_failure(result: flow.StepResult, s: EnrollmentSession) -> Response:
    if result.code == 'validation_error':
        return error_response(
            result.message,
            status_code=400,
            code='validation_error',
            fields=result.errors,
            focus_field=result.focus_field,
            extra={'session': _serialize_session(s)},
        )
    status_code = 409 if result.code in _STATE_CONFLICTS else 400
    return error_response(result.message, status_code=status_code, code=result.code,
                          extra={'session': _serialize_session(s)})


def _submission_pending(s: EnrollmentSession, ctx: RequestContext) -> Optional[Response]:
    if not s.is_submitting:
        return None
    return error_response(
        ctx.text('submission_in_progress', 'A submission is already in progress for this registration.'),
        status_code=409,
        code='submission_in_progress',
    )


def _server_error(e: Exception) -> Response:
    detail = 'Server error'
    if settings.DEBUG:
        detail = f"{detail}: {e.__class__.__name__}: {str(e)}".strip()
    return error_response(detail, status_code=500, code='server_error')


@api_view(['POST'])
@authentication_classes([])
@permission_classes([])
def create_session(request):
    """POST /api/enrollment/sessions
    Starts a wizard session at program_selection. Body may carry initial field values.
    """
    ctx = _context(request)
    s = EnrollmentSession()
    if ctx.uid:
        s.firebase_uid = ctx.uid
    initial = request.data if isinstance(request.data, dict) else {}
    if initial:
        result = flow.update_fields(s.flow_state(), initial, get_catalog(), ctx)
        s.apply_flow_state(result.state)
    s.ensure_ttl()
    s.save()
    return Response(_serialize_session(s), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([])
def session_detail(request, session_id):
    """GET /api/enrollment/sessions/{id}"""
    s, err = _load_session(session_id, _context(request))
    if err is not None:
        return err
    return Response(_serialize_session(s))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([])
def session_fields(request, session_id):
    """POST /api/enrollment/sessions/{id}/fields
    Body: {field: value, ...}. Applies cascades and recomputes the price.
    """
    ctx = _context(request)
    s, err = _load_session(session_id, ctx)
    if err is not None:
        return err
    changes = request.data if isinstance(request.data, dict) else None
    if changes is None:
        return error_response('Expected a JSON object of field values', status_code=400, code='validation_error')
    pending = _submission_pending(s, ctx)
    if pending is not None:
        return pending

    result = flow.update_fields(s.flow_state(), changes, get_catalog(), ctx)
    if not result.ok:
        return _step_failure(result, s)
    s.apply_flow_state(result.state)
    s.save(update_fields=['form_data_encrypted', 'calculated_price', 'updated_at'])
    return Response(_serialize_session(s))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([])
def session_next(request, session_id):
    """POST /api/enrollment/sessions/{id}/next"""
    ctx = _context(request)
    s, err = _load_session(session_id, ctx)
    if err is not None:
        return err
    pending = _submission_pending(s, ctx)
    if pending is not None:
        return pending
    result = flow.go_next(s.flow_state(), get_catalog(), ctx)
    if not result.ok:
        return _step_failure(result, s)
    s.apply_flow_state(result.state)
    s.save(update_fields=['step', 'form_data_encrypted', 'calculated_price', 'updated_at'])
    return Response(_serialize_session(s))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([])
def session_previous(request, session_id):
    """POST /api/enrollment/sessions/{id}/previous"""
    ctx = _context(request)
    s, err = _load_session(session_id, ctx)
    if err is not None:
        return err
    pending = _submission_pending(s, ctx)
    if pending is not None:
        return pending
    result = flow.go_previous(s.flow_state(), ctx)
    if not result.ok:
        return _step_failure(result, s)
    s.apply_flow_state(result.state)
    s.save(update_fields=['step', 'updated_at'])
    return Response(_serialize_session(s))


def _proof_payload(request) -> Dict[str, Any]:
    data = request.data
    if hasattr(data, 'getlist'):
        payload = {k: data.get(k) for k in data.keys() if k != 'screenshot'}
    elif isinstance(data, dict):
        payload = dict(data)
    else:
        payload = {}

    upload = request.FILES.get('screenshot') if hasattr(request, 'FILES') else None
    if upload is not None:
        payload['screenshot_data_uri'] = encode_upload(upload)
    elif isinstance(payload.get('screenshot'), str) and not payload.get('screenshot_data_uri'):
        payload['screenshot_data_uri'] = payload.pop('screenshot')
    return payload


def _account_lookup(value: str) -> Optional[tuple]:
    method = fetch_payment_method(value)
    if method is None:
        return None
    return method.account_name(), method.account_number


@api_view(['POST'])
@authentication_classes([])
@permission_classes([])
def session_submit(request, session_id):
    """POST /api/enrollment/sessions/{id}/submit
    Body (JSON or multipart): {type, payment_method, screenshot_data_uri | screenshot (file) | link | transaction_id, coupon_code?}
    Verifies the payment proof against the current price. Only a verified payment completes the registration.
    """
    ctx = _context(request)
    s, err = _load_session(session_id, ctx)
    if err is not None:
        return err

    if s.step != flow.PAYMENT_PROOF:
        return error_response(
            ctx.text('submit_wrong_step', 'Payment proof can only be submitted on the payment step.'),
            status_code=409,
            code='invalid_step',
        )
    if not EnrollmentSession.claim_submission(s.id):
        return error_response(
            ctx.text('submission_in_progress', 'A submission is already in progress for this registration.'),
            status_code=409,
            code='submission_in_progress',
        )

    try:
        s.refresh_from_db()
        try:
            payload = _proof_payload(request)
        except DataUriError as e:
            logger.warning("payment screenshot could not be encoded: %s", e)
            return error_response(
                ctx.text('screenshot_unreadable', 'The uploaded screenshot could not be read. Please upload it again.'),
                status_code=400,
                code='validation_error',
                fields={'screenshot': [str(e)]},
                focus_field='screenshot',
            )

        result = flow.submit(
            s.flow_state(),
            payload,
            catalog=get_catalog(),
            verifier=get_verifier(),
            save_registration=create_registration,
            ctx=ctx,
            account_lookup=_account_lookup,
        )

        if result.code == 'validation_error':
            s.is_submitting = False
            if result.state.step != s.step:
                s.apply_flow_state(result.state)
                s.save(update_fields=['step', 'updated_at'])
            return _step_failure(result, s)

        s.apply_flow_state(result.state)
        s.last_message = result.message
        s.last_verdict = result.verdict.to_dict() if result.verdict else {}
        if result.ok:
            s.registration_id = result.registration_id
            s.registration = serialize_registration(result.registration_id, result.registration)
        s.is_submitting = False
        s.save(update_fields=_SUBMIT_FIELDS)

        body = {
            'verified': bool(result.verdict and result.verdict.is_valid),
            'message': result.message,
            'verdict': s.last_verdict or None,
            'session': _serialize_session(s),
        }
        if result.code == 'registration_save_failed':
            return error_response(result.message, status_code=503, code='registration_save_failed', extra=body)
        return Response(body)
    except StoreUnavailable:
        raise
    except Exception as e:
        logger.exception("submission failed for session %s", s.id)
        return _server_error(e)
    finally:
        EnrollmentSession.release_submission(s.id)
