import json
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings
from django.db import models
from django.utils import timezone

from .steps import PAYMENT_PROOF, STEPS


def _get_fernet() -> Optional[Fernet]:
    """Return a Fernet instance if PII_ENCRYPTION_KEY is configured; otherwise None."""
    key = (getattr(settings, 'PII_ENCRYPTION_KEY', '') or '').strip()
    if not key:
        return None
    try:
        return Fernet(key.encode('utf-8'))
    except (TypeError, ValueError):
        return None


def _encrypt_text(plaintext: str) -> str:
    if plaintext is None:
        return ''
    f = _get_fernet()
    if not f:
        return plaintext
    return f.encrypt(plaintext.encode('utf-8')).decode('utf-8')


def _decrypt_text(ciphertext: str) -> str:
    """Decrypt with Fernet if configured. A token that fails to decrypt reads as empty."""
    if ciphertext is None:
        return ''
    f = _get_fernet()
    if not f:
        return ciphertext
    try:
        return f.decrypt(ciphertext.encode('utf-8')).decode('utf-8')
    except InvalidToken:
        return ''


class EnrollmentSession(models.Model):
    """One wizard run.

    - Form values hold student PII and are stored encrypted when PII_ENCRYPTION_KEY is set.
    - `is_submitting` is claimed with a conditional UPDATE so only one submission runs at a time.
    - The registration snapshot is written only after a verified payment was saved.
    """
    STEP_CHOICES = tuple((i, name) for i, name in enumerate(STEPS))

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    step = models.PositiveSmallIntegerField(choices=STEP_CHOICES, default=0)
    form_data_encrypted = models.TextField(blank=True, default='')
    calculated_price = models.FloatField(default=0.0)
    is_submitting = models.BooleanField(default=False)
    registration_id = models.CharField(max_length=128, blank=True, default='')
    registration = models.JSONField(default=dict, blank=True)
    last_message = models.TextField(blank=True, default='')
    last_verdict = models.JSONField(default=dict, blank=True)
    firebase_uid = models.CharField(max_length=128, blank=True, default='')
    expires_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['expires_at'], name='enrollment_expires_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.id} ({self.step_name})"

    @property
    def step_name(self) -> str:
        return STEPS[self.step]

    @property
    def form_data(self) -> Dict[str, Any]:
        raw = _decrypt_text(self.form_data_encrypted)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @form_data.setter
    def form_data(self, value: Dict[str, Any]) -> None:
        self.form_data_encrypted = _encrypt_text(json.dumps(value or {}, ensure_ascii=False))

    def flow_state(self):
        from .flow import FlowState

        return FlowState(step=int(self.step), values=self.form_data, calculated_price=float(self.calculated_price or 0))

    def apply_flow_state(self, state) -> None:
        self.step = state.step
        self.form_data = state.values
        self.calculated_price = state.calculated_price

    def ensure_ttl(self) -> None:
        """Ensure expires_at is set based on settings.ENROLLMENT_SESSION_TTL_MINUTES if missing."""
        if not self.expires_at:
            ttl_min = int(getattr(settings, 'ENROLLMENT_SESSION_TTL_MINUTES', 120) or 120)
            self.expires_at = timezone.now() + timedelta(minutes=ttl_min)

    def is_expired(self) -> bool:
        return bool(self.expires_at and self.expires_at <= timezone.now())

    @classmethod
    def claim_submission(cls, session_id) -> bool:
        """Atomically mark a payment-step session as submitting. False if already claimed."""
        updated = cls.objects.filter(id=session_id, step=PAYMENT_PROOF, is_submitting=False).update(
            is_submitting=True,
            updated_at=timezone.now(),
        )
        return updated == 1

    @classmethod
    def release_submission(cls, session_id) -> None:
        cls.objects.filter(id=session_id).update(is_submitting=False, updated_at=timezone.now())
