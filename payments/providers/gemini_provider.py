import json
import re
from typing import Any, Dict, Optional

from payments.datauri import decode_data_uri

# Gemini adapter for reading payment receipts. Expects settings.GEMINI_API_KEY and
# optional settings.GEMINI_MODEL (default: 'gemini-1.5-flash').


_SYSTEM = (
    "You are an expert payment verification agent. You verify payments from a screenshot "
    "or PDF of a payment receipt.\n"
    "Extract the paid amount, the transaction number and the recipient account details "
    "(name and/or number) the payment was made to.\n"
    "A payment is valid when:\n"
    "1. The extracted amount equals the expected amount.\n"
    "2. When expected account details are given, the recipient account name OR number on the "
    "receipt matches one of them.\n"
    "A transaction number supplied by the user should be cross-checked when visible, but its "
    "absence alone does not make the payment invalid.\n"
    "Return ONLY valid JSON with keys:\n"
    "- 'isPaymentValid': boolean.\n"
    "- 'extractedPaymentAmount': number or null.\n"
    "- 'transactionNumber': string or null.\n"
    "- 'isAccountMatch': boolean or null.\n"
    "- 'extractedAccountName': string or null.\n"
    "- 'extractedAccountNumber': string or null.\n"
    "- 'reason': short reason when invalid (e.g., 'Amount mismatch', 'Account details mismatch', "
    "'Information unclear in screenshot').\n"
    "Output JSON only, no markdown, no extra text."
)


def _strip_fences(raw: str) -> str:
    t = (raw or '').strip()
    if t.startswith('```'):
        t = re.sub(r"^```[a-zA-Z0-9_\-]*\s*", "", t)
        t = t.replace('```', '')
    return t.strip()


def _to_float(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, str):
        x = re.sub(r"[^0-9.\-]", "", x.replace(',', ''))
        if not x:
            return None
    try:
        return float(x)
    except (TypeError, ValueError):
        return None


def _to_str(x: Any) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None


def parse_classification(raw_text: str) -> Dict[str, Any]:
    data = json.loads(_strip_fences(raw_text) or '{}')
    if not isinstance(data, dict):
        raise ValueError('Classifier returned a non-object JSON payload')
    is_valid = data.get('isPaymentValid', data.get('is_valid'))
    account_match = data.get('isAccountMatch')
    return {
        'is_valid': bool(is_valid) if isinstance(is_valid, bool) else str(is_valid).strip().lower() == 'true',
        'extracted_amount': _to_float(data.get('extractedPaymentAmount', data.get('extracted_amount'))),
        'transaction_number': _to_str(data.get('transactionNumber', data.get('transaction_number'))),
        'is_account_match': account_match if isinstance(account_match, bool) else None,
        'extracted_account_name': _to_str(data.get('extractedAccountName')),
        'extracted_account_number': _to_str(data.get('extractedAccountNumber')),
        'reason': _to_str(data.get('reason')),
    }


def classify_payment_screenshot(
    data_uri: str,
    expected_amount: float,
    *,
    api_key: str,
    model_name: str = 'gemini-1.5-flash',
    transaction_id: Optional[str] = None,
    expected_account_name: Optional[str] = None,
    expected_account_number: Optional[str] = None,
) -> Dict[str, Any]:
    """Ask Gemini whether a receipt image shows the expected payment.

    Returns a dict with keys: is_valid, extracted_amount, transaction_number,
    is_account_match, extracted_account_name, extracted_account_number, reason.
    Raises on API or parse errors so the caller can turn them into a verdict.
    """
    from google import genai
    from google.genai import types

    mime_type, payload = decode_data_uri(data_uri)
    client = genai.Client(api_key=api_key.strip())

    prompt = (
        f"Expected payment amount: {expected_amount}\n"
        f"Transaction number (if available): {transaction_id or 'not provided'}\n"
        f"Expected recipient account name: {expected_account_name or 'not provided'}\n"
        f"Expected recipient account number: {expected_account_number or 'not provided'}\n"
        "Analyze the attached receipt and return JSON now."
    )

    resp = client.models.generate_content(
        model=model_name,
        contents=[
            types.Part.from_bytes(data=payload, mime_type=mime_type),
            prompt,
        ],
        config=types.GenerateContentConfig(
            system_instruction=_SYSTEM,
            temperature=0,
            response_mime_type='application/json',
        ),
    )
    return parse_classification(resp.text or '{}')
