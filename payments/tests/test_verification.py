import base64
from unittest.mock import MagicMock, patch

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, override_settings

from payments.datauri import (
    DataUriError,
    check_proof_size,
    decode_data_uri,
    encode_upload,
    is_supported_proof_type,
    mime_type_of,
    payload_size,
)
from payments.providers.gemini_provider import parse_classification
from payments.verification import (
    GENERIC_FAILURE,
    LinkPresenceStrategy,
    PaymentProof,
    PaymentVerifier,
    ScreenshotVerificationStrategy,
    TransactionIdPresenceStrategy,
    default_strategies,
    verify,
)


PNG_URI = 'data:image/png;base64,' + base64.b64encode(b'\x89PNG fake receipt').decode('ascii')


def _classifier(**result):
    return MagicMock(return_value=result)


class TransactionIdTests(SimpleTestCase):
    def test_transaction_id_is_echoed(self):
        verdict = verify(PaymentProof(type='transaction_id', transaction_id='TX123456'), 1220)
        self.assertTrue(verdict.is_valid)
        self.assertEqual(verdict.transaction_number, 'TX123456')

    def test_empty_transaction_id_is_invalid(self):
        verdict = TransactionIdPresenceStrategy().verify(PaymentProof(type='transaction_id'), 1220)
        self.assertFalse(verdict.is_valid)

    def test_legacy_type_name_is_accepted(self):
        proof = PaymentProof.from_dict({'type': 'transactionId', 'transaction_id': ' TX9 '})
        self.assertEqual(proof.type, 'transaction_id')
        self.assertTrue(verify(proof, 10).is_valid)


class LinkTests(SimpleTestCase):
    def test_link_presence(self):
        strategy = LinkPresenceStrategy()
        self.assertTrue(strategy.verify(PaymentProof(type='link', link='https://bank.example/r/1'), 50).is_valid)
        self.assertFalse(strategy.verify(PaymentProof(type='link', link=''), 50).is_valid)


class ScreenshotTests(SimpleTestCase):
    def test_missing_screenshot_fails_without_calling_classifier(self):
        classifier = _classifier(is_valid=True, extracted_amount=1220)
        verdict = verify(PaymentProof(type='screenshot'), 1220, classifier=classifier)
        self.assertFalse(verdict.is_valid)
        self.assertIn('screenshot', verdict.message.lower())
        classifier.assert_not_called()

    def test_unsupported_mime_type_is_rejected_locally(self):
        classifier = _classifier(is_valid=True, extracted_amount=10)
        uri = 'data:text/plain;base64,' + base64.b64encode(b'hello').decode('ascii')
        verdict = ScreenshotVerificationStrategy(classifier).verify(
            PaymentProof(type='screenshot', screenshot_data_uri=uri), 10)
        self.assertFalse(verdict.is_valid)
        classifier.assert_not_called()

    def test_valid_screenshot_with_matching_amount(self):
        classifier = _classifier(is_valid=True, extracted_amount=1220.0, transaction_number='FT24001')
        proof = PaymentProof(
            type='screenshot',
            screenshot_data_uri=PNG_URI,
            payment_method='cbe',
            expected_account_name='Al-Noor School',
            expected_account_number='1000123',
        )
        verdict = verify(proof, 1220, classifier=classifier)
        self.assertTrue(verdict.is_valid)
        self.assertEqual(verdict.transaction_number, 'FT24001')
        _args, kwargs = classifier.call_args
        self.assertEqual(kwargs['expected_account_name'], 'Al-Noor School')
        self.assertEqual(kwargs['expected_account_number'], '1000123')

    def test_amount_mismatch_overrides_classifier(self):
        classifier = _classifier(is_valid=True, extracted_amount=100)
        verdict = verify(PaymentProof(type='screenshot', screenshot_data_uri=PNG_URI), 150, classifier=classifier)
        self.assertFalse(verdict.is_valid)
        self.assertEqual(verdict.extracted_amount, 100)
        self.assertIn('mismatch', verdict.reason.lower())

    def test_classifier_rejection_keeps_its_reason(self):
        classifier = _classifier(is_valid=False, reason='Information unclear in screenshot')
        verdict = verify(PaymentProof(type='screenshot', screenshot_data_uri=PNG_URI), 150, classifier=classifier)
        self.assertFalse(verdict.is_valid)
        self.assertEqual(verdict.message, 'Information unclear in screenshot')

    def test_classifier_errors_become_generic_invalid_verdict(self):
        classifier = MagicMock(side_effect=TimeoutError('deadline'))
        with self.assertLogs('payments.verification', level='ERROR'):
            verdict = verify(PaymentProof(type='screenshot', screenshot_data_uri=PNG_URI), 150, classifier=classifier)
        self.assertFalse(verdict.is_valid)
        self.assertEqual(verdict.message, GENERIC_FAILURE)
        self.assertNotIn('deadline', verdict.message)

    @override_settings(GEMINI_API_KEY='')
    def test_missing_api_key_is_a_verification_error(self):
        with self.assertLogs('payments.verification', level='ERROR'):
            verdict = verify(PaymentProof(type='screenshot', screenshot_data_uri=PNG_URI), 150)
        self.assertFalse(verdict.is_valid)

    @override_settings(GEMINI_API_KEY='key', GEMINI_MODEL='gemini-test')
    def test_default_classifier_calls_gemini_provider(self):
        with patch('payments.providers.gemini_provider.classify_payment_screenshot') as mock_classify:
            mock_classify.return_value = {'is_valid': True, 'extracted_amount': 150}
            verdict = verify(PaymentProof(type='screenshot', screenshot_data_uri=PNG_URI), 150)
        self.assertTrue(verdict.is_valid)
        self.assertEqual(mock_classify.call_args.kwargs['model_name'], 'gemini-test')


class VerifierTests(SimpleTestCase):
    def test_unknown_proof_type_is_invalid(self):
        verdict = PaymentVerifier(default_strategies()).verify(PaymentProof(type='cash'), 10)
        self.assertFalse(verdict.is_valid)

    def test_strategy_exceptions_never_propagate(self):
        broken = MagicMock()
        broken.verify.side_effect = ValueError('boom')
        with self.assertLogs('payments.verification', level='ERROR'):
            verdict = PaymentVerifier({'link': broken}).verify(PaymentProof(type='link', link='x'), 10)
        self.assertFalse(verdict.is_valid)

    def test_verdict_document_form(self):
        verdict = verify(PaymentProof(type='transaction_id', transaction_id='TX1'), 10)
        doc = verdict.to_document()
        self.assertEqual(doc['isValid'], True)
        self.assertEqual(doc['transactionNumber'], 'TX1')


class DataUriTests(SimpleTestCase):
    def test_decode_and_mime(self):
        mime, payload = decode_data_uri(PNG_URI)
        self.assertEqual(mime, 'image/png')
        self.assertEqual(payload, b'\x89PNG fake receipt')
        self.assertEqual(mime_type_of(PNG_URI), 'image/png')
        self.assertTrue(is_supported_proof_type('application/pdf'))
        self.assertFalse(is_supported_proof_type('text/html'))

    def test_decode_rejects_garbage(self):
        with self.assertRaises(DataUriError):
            decode_data_uri('not-a-data-uri')
        with self.assertRaises(DataUriError):
            decode_data_uri('data:image/png;base64,@@@')

    def test_encode_upload(self):
        upload = SimpleUploadedFile('receipt.jpg', b'jpegbytes', content_type='image/jpeg')
        uri = encode_upload(upload)
        self.assertTrue(uri.startswith('data:image/jpeg;base64,'))
        self.assertEqual(decode_data_uri(uri)[1], b'jpegbytes')

    def test_encode_upload_errors(self):
        with self.assertRaises(DataUriError):
            encode_upload(SimpleUploadedFile('empty.png', b'', content_type='image/png'))
        with override_settings(PAYMENT_PROOF_MAX_BYTES=4):
            with self.assertRaises(DataUriError):
                encode_upload(SimpleUploadedFile('big.png', b'0123456789', content_type='image/png'))

    def test_payload_size_counts_decoded_bytes(self):
        self.assertEqual(payload_size(PNG_URI), len(b'\x89PNG fake receipt'))
        self.assertEqual(payload_size('data:text/plain;base64,QQ=='), 1)
        self.assertIsNone(payload_size('not a data uri'))

    def test_check_proof_size(self):
        with override_settings(PAYMENT_PROOF_MAX_BYTES=len(b'\x89PNG fake receipt')):
            check_proof_size(PNG_URI)
        with override_settings(PAYMENT_PROOF_MAX_BYTES=4):
            with self.assertRaises(DataUriError):
                check_proof_size(PNG_URI)


class GeminiParseTests(SimpleTestCase):
    def test_parses_fenced_json(self):
        raw = '```json\n{"isPaymentValid": true, "extractedPaymentAmount": "1,220.00", "transactionNumber": "FT1"}\n```'
        result = parse_classification(raw)
        self.assertTrue(result['is_valid'])
        self.assertEqual(result['extracted_amount'], 1220.0)
        self.assertEqual(result['transaction_number'], 'FT1')

    def test_missing_amount_is_none(self):
        result = parse_classification('{"isPaymentValid": false, "reason": "Amount mismatch"}')
        self.assertFalse(result['is_valid'])
        self.assertIsNone(result['extracted_amount'])
        self.assertEqual(result['reason'], 'Amount mismatch')
