"""Payment proof verification.

Each proof type is handled by a `VerificationStrategy` registered in
`STRATEGIES`. Strategies never raise: failures of the external classifier are
logged and reported as an invalid `Verdict` with a generic message.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from django.conf import settings

from .datauri import is_supported_proof_type, mime_type_of


logger = logging.getLogger(__name__)


SCREENSHOT = 'screenshot'
LINK = 'link'
TRANSACTION_ID = 'transaction_id'

PROOF_TYPES = (SCREENSHOT, LINK, TRANSACTION_ID)

# Older clients send these names.
_PROOF_TYPE_ALIASES = {
    'transactionId': TRANSACTION_ID,
    'transaction-id': TRANSACTION_ID,
    'pdfLink': LINK,
    'pdf_link': LINK,
}

AMOUNT_TOLERANCE = 0.005

GENERIC_FAILURE = 'Payment verification failed. Please try again later.'


def canonical_proof_type(value: Any) -> str:
    raw = str(value or '').strip()
    return _PROOF_TYPE_ALIASES.get(raw, raw.lower())


@dataclass(frozen=True)
class PaymentProof:
    type: str
    payment_method: str = ''
    screenshot_data_uri: str = ''
    link: str = ''
    transaction_id: str = ''
    expected_account_name: str = ''
    expected_account_number: str = ''

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PaymentProof':
        d = dict(data or {})
        return cls(
            type=canonical_proof_type(d.get('type')),
            payment_method=str(d.get('payment_method') or '').strip(),
            screenshot_data_uri=str(d.get('screenshot_data_uri') or d.get('screenshot') or '').strip(),
            link=str(d.get('link') or '').strip(),
            transaction_id=str(d.get('transaction_id') or '').strip(),
            expected_account_name=str(d.get('expected_account_name') or '').strip(),
            expected_account_number=str(d.get('expected_account_number') or '').strip(),
        )

    def to_document(self) -> Dict[str, Any]:
        """Registration-document form; screenshot bytes are not persisted."""
        doc: Dict[str, Any] = {'type': self.type, 'paymentMethod': self.payment_method}
        if self.type == SCREENSHOT:
            doc['screenshotProvided'] = bool(self.screenshot_data_uri)
            doc['screenshotMimeType'] = mime_type_of(self.screenshot_data_uri) or ''
        elif self.type == LINK:
            doc['link'] = self.link
        elif self.type == TRANSACTION_ID:
            doc['transactionId'] = self.transaction_id
        return doc


@dataclass(frozen=True)
class Verdict:
    is_valid: bool
    message: str
    extracted_amount: Optional[float] = None
    transaction_number: Optional[str] = None
    reason: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {'isValid': self.is_valid, 'message': self.message}
        if self.extracted_amount is not None:
            doc['extractedAmount'] = self.extracted_amount
        if self.transaction_number:
            doc['transactionNumber'] = self.transaction_number
        if self.reason:
            doc['reason'] = self.reason
        for k, v in self.details.items():
            if v is not None:
                doc[k] = v
        return doc


def invalid(reason: str, message: Optional[str] = None, **kwargs: Any) -> Verdict:
    return Verdict(is_valid=False, message=message or reason, reason=reason, **kwargs)


Classifier = Callable[..., Dict[str, Any]]


def gemini_classifier(
    data_uri: str,
    expected_amount: float,
    *,
    transaction_id: Optional[str] = None,
    expected_account_name: Optional[str] = None,
    expected_account_number: Optional[str] = None,
) -> Dict[str, Any]:
    from .providers.gemini_provider import classify_payment_screenshot

    api_key = (getattr(settings, 'GEMINI_API_KEY', '') or '').strip()
    if not api_key:
        raise RuntimeError('GEMINI_API_KEY is not configured')
    model_name = (getattr(settings, 'GEMINI_MODEL', '') or 'gemini-1.5-flash').strip()
    return classify_payment_screenshot(
        data_uri,
        expected_amount,
        api_key=api_key,
        model_name=model_name,
        transaction_id=transaction_id,
        expected_account_name=expected_account_name,
        expected_account_number=expected_account_number,
    )


class VerificationStrategy:
    proof_type: str = ''

    def verify(self, proof: PaymentProof, expected_amount: float) -> Verdict:
        raise NotImplementedError


class ScreenshotVerificationStrategy(VerificationStrategy):
    proof_type = SCREENSHOT

    def __init__(self, classifier: Optional[Classifier] = None):
        self._classifier = classifier

    @property
    def classifier(self) -> Classifier:
        return self._classifier or gemini_classifier

    def verify(self, proof: PaymentProof, expected_amount: float) -> Verdict:
        if not proof.screenshot_data_uri:
            return invalid('Missing screenshot', 'Please upload a screenshot of your payment.')

        mime_type = mime_type_of(proof.screenshot_data_uri)
        if not is_supported_proof_type(mime_type):
            return invalid(
                'Unsupported file type',
                'The payment proof must be an image or a PDF file.',
            )

        try:
            result = self.classifier(
                proof.screenshot_data_uri,
                expected_amount,
                transaction_id=proof.transaction_id or None,
                expected_account_name=proof.expected_account_name or None,
                expected_account_number=proof.expected_account_number or None,
            )
        except Exception:
            logger.exception("screenshot classification failed (method=%s)", proof.payment_method)
            return invalid('Verification error', GENERIC_FAILURE)

        result = dict(result or {})
        extracted = result.get('extracted_amount')
        try:
            extracted = float(extracted) if extracted is not None else None
        except (TypeError, ValueError):
            extracted = None
        txn = result.get('transaction_number') or None
        details = {
            'isAccountMatch': result.get('is_account_match'),
            'extractedAccountName': result.get('extracted_account_name'),
            'extractedAccountNumber': result.get('extracted_account_number'),
        }

        if not result.get('is_valid'):
            reason = result.get('reason') or 'Payment could not be verified'
            return Verdict(
                is_valid=False,
                message=reason,
                extracted_amount=extracted,
                transaction_number=txn,
                reason=reason,
                details=details,
            )

        if extracted is None or abs(extracted - float(expected_amount)) > AMOUNT_TOLERANCE:
            logger.info("classifier amount %s does not match expected %s", extracted, expected_amount)
            reason = f'Amount mismatch: expected {float(expected_amount):.2f}, found {extracted if extracted is not None else "none"}'
            return Verdict(
                is_valid=False,
                message=reason,
                extracted_amount=extracted,
                transaction_number=txn,
                reason=reason,
                details=details,
            )

        return Verdict(
            is_valid=True,
            message='Payment verified.',
            extracted_amount=extracted,
            transaction_number=txn,
            details=details,
        )


class LinkPresenceStrategy(VerificationStrategy):
    proof_type = LINK

    def verify(self, proof, expected_amount):
        if not proof.link:
            return invalid('Missing link', 'Please provide a link to your payment receipt.')
        # Not resolved or fetched; presence only.
        return Verdict(is_valid=True, message='Payment link received.')


class TransactionIdPresenceStrategy(VerificationStrategy):
    proof_type = TRANSACTION_ID

    def verify(self, proof, expected_amount):
        if not proof.transaction_id:
            return invalid('Missing transaction ID', 'Please provide the transaction ID of your payment.')
        return Verdict(
            is_valid=True,
            message='Transaction ID received.',
            transaction_number=proof.transaction_id,
        )


class PaymentVerifier:
    def __init__(self, strategies: Optional[Dict[str, VerificationStrategy]] = None):
        self.strategies = dict(strategies) if strategies is not None else default_strategies()

    def verify(self, proof: PaymentProof, expected_amount: float) -> Verdict:
        strategy = self.strategies.get(proof.type)
        if strategy is None:
            logger.warning("unknown payment proof type: %r", proof.type)
            return invalid('Invalid payment proof type', 'Please choose how you want to prove your payment.')
        try:
            return strategy.verify(proof, expected_amount)
        except Exception:
            logger.exception("payment verification strategy %s failed", strategy.__class__.__name__)
            return invalid('Verification error', GENERIC_FAILURE)


def default_strategies(classifier: Optional[Classifier] = None) -> Dict[str, VerificationStrategy]:
    strategies = (
        ScreenshotVerificationStrategy(classifier),
        LinkPresenceStrategy(),
        TransactionIdPresenceStrategy(),
    )
    return {s.proof_type: s for s in strategies}


def verify(proof: PaymentProof, expected_amount: float, classifier: Optional[Classifier] = None) -> Verdict:
    return PaymentVerifier(default_strategies(classifier)).verify(proof, expected_amount)
