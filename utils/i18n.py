from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.utils.translation.trans_real import parse_accept_lang_header


DEFAULT_LANGUAGE = 'en'
SUPPORTED_LANGUAGES = ('en', 'am', 'ar')


# UI strings per language. Call sites always pass a literal default, so a key
# that is missing everywhere still renders something sensible.
STRINGS: Dict[str, Dict[str, str]] = {
    'en': {
        'validation_failed': 'Please check the highlighted fields and try again.',
        'step_not_forward': 'Submit your payment proof to complete the registration.',
        'step_first': 'You are already on the first step.',
        'step_locked': 'This registration is already complete.',
        'submit_wrong_step': 'Payment proof can only be submitted on the payment step.',
        'submission_in_progress': 'A submission is already in progress for this registration.',
        'payment_verified': 'Payment verified. Your registration is complete.',
        'payment_rejected': 'We could not verify your payment. Please check the proof and try again.',
        'registration_save_failed': 'Your payment was verified but the registration could not be saved. Please try again.',
        'screenshot_unreadable': 'The uploaded screenshot could not be read. Please upload it again.',
        'store_unavailable': 'The enrollment service is temporarily unavailable. Please try again.',
        'session_not_found': 'Enrollment session not found.',
        'access_denied': 'Access denied.',
    },
    'am': {
        'validation_failed': 'እባክዎ የተመለከቱትን መስኮች ያረጋግጡ እና እንደገና ይሞክሩ።',
        'payment_verified': 'ክፍያው ተረጋግጧል። ምዝገባዎ ተጠናቋል።',
        'payment_rejected': 'ክፍያዎን ማረጋገጥ አልቻልንም። እባክዎ ማስረጃውን ያረጋግጡ እና እንደገና ይሞክሩ።',
        'access_denied': 'መዳረሻ ተከልክሏል።',
    },
    'ar': {
        'validation_failed': 'يرجى التحقق من الحقول المحددة والمحاولة مرة أخرى.',
        'step_first': 'أنت بالفعل في الخطوة الأولى.',
        'payment_verified': 'تم التحقق من الدفع. اكتمل تسجيلك.',
        'payment_rejected': 'تعذر التحقق من الدفع. يرجى مراجعة الإثبات والمحاولة مرة أخرى.',
        'store_unavailable': 'خدمة التسجيل غير متاحة مؤقتًا. يرجى المحاولة مرة أخرى.',
        'session_not_found': 'لم يتم العثور على جلسة التسجيل.',
        'access_denied': 'تم رفض الوصول.',
    },
}


def normalize_language(value: Any) -> str:
    code = str(value or '').strip().lower()
    if not code:
        return DEFAULT_LANGUAGE
    code = re.split(r'[-_]', code, maxsplit=1)[0]
    return code if code in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def get_text(lang: str, key: str, default: str, **params: Any) -> str:
    """Look `key` up in `lang`, then the default language, then use `default`."""
    text: Optional[str] = (STRINGS.get(lang) or {}).get(key)
    if text is None and lang != DEFAULT_LANGUAGE:
        text = STRINGS[DEFAULT_LANGUAGE].get(key)
    if text is None:
        text = default
    for k, v in params.items():
        text = text.replace('{' + k + '}', str(v))
    return text


def _language_from_accept_header(header: str) -> Optional[str]:
    # Django returns the ranges ordered by q, highest first.
    for tag, q in parse_accept_lang_header(header or ''):
        code = re.split(r'[-_]', tag, maxsplit=1)[0]
        if q > 0 and code in SUPPORTED_LANGUAGES:
            return code
    return None


@dataclass(frozen=True)
class RequestContext:
    """Per-request settings handed to components instead of module globals."""
    language: str = DEFAULT_LANGUAGE
    uid: Optional[str] = None
    email: Optional[str] = None

    def text(self, key: str, default: str, **params: Any) -> str:
        return get_text(self.language, key, default, **params)


def request_context(request, *, uid: Optional[str] = None, email: Optional[str] = None) -> RequestContext:
    raw = ''
    try:
        raw = (request.GET.get('lang') or '').strip()
    except Exception:
        raw = ''
    if raw:
        lang = normalize_language(raw)
    else:
        header = request.META.get('HTTP_ACCEPT_LANGUAGE', '') if hasattr(request, 'META') else ''
        lang = _language_from_accept_header(header) or DEFAULT_LANGUAGE
    return RequestContext(language=lang, uid=uid, email=email)
