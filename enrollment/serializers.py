from __future__ import annotations

import re

from django.utils import timezone
from rest_framework import serializers

from catalog.reference import get_catalog
from payments.datauri import DataUriError, check_proof_size
from payments.verification import PROOF_TYPES, canonical_proof_type

from .steps import COURSE_SELECTION, PROGRAM_SELECTION, STUDENT_INFO


PHONE_RE = re.compile(r'^[0-9]{9,15}$')

GENDERS = ('male', 'female')


class ProgramSelectionSerializer(serializers.Serializer):
    school_level = serializers.CharField(max_length=64)
    program = serializers.CharField(max_length=64)

    def validate_school_level(self, value):
        if get_catalog().level(value) is None:
            raise serializers.ValidationError('Unknown school level.')
        return value

    def validate(self, attrs):
        if get_catalog().find_program(attrs['school_level'], attrs['program']) is None:
            raise serializers.ValidationError({'program': ['Program is not offered for this school level.']})
        return attrs


class StudentInfoSerializer(serializers.Serializer):
    full_name = serializers.CharField(min_length=3, max_length=200)
    date_of_birth = serializers.DateField()
    email = serializers.EmailField()
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    address = serializers.CharField(required=False, allow_blank=True, max_length=500)
    gender = serializers.ChoiceField(choices=GENDERS, required=False, allow_blank=True)

    def validate_date_of_birth(self, value):
        if value >= timezone.localdate():
            raise serializers.ValidationError('Date of birth must be in the past.')
        return value

    def validate_phone(self, value):
        value = (value or '').strip()
        if value and not PHONE_RE.match(value):
            raise serializers.ValidationError('Phone number must be 9 to 15 digits.')
        return value


class CourseSelectionSerializer(serializers.Serializer):
    selected_courses = serializers.ListField(
        child=serializers.CharField(max_length=64),
        required=False,
        allow_empty=True,
    )


class PaymentProofSerializer(serializers.Serializer):
    type = serializers.CharField(max_length=32)
    payment_method = serializers.CharField(max_length=64)
    screenshot_data_uri = serializers.CharField(required=False, allow_blank=True)
    link = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    transaction_id = serializers.CharField(required=False, allow_blank=True, max_length=128)
    coupon_code = serializers.CharField(required=False, allow_blank=True, max_length=64)

    def validate_type(self, value):
        value = canonical_proof_type(value)
        if value not in PROOF_TYPES:
            raise serializers.ValidationError('Choose screenshot, link or transaction_id.')
        return value

    def validate(self, attrs):
        uri = attrs.get('screenshot_data_uri')
        if uri:
            try:
                check_proof_size(uri)
            except DataUriError as e:
                # Reported under the name the client uploads with.
                raise serializers.ValidationError({'screenshot': [str(e)]})
        return attrs


# Fields each step owns, in declared order.
STEP_SERIALIZERS = {
    PROGRAM_SELECTION: ProgramSelectionSerializer,
    STUDENT_INFO: StudentInfoSerializer,
    COURSE_SELECTION: CourseSelectionSerializer,
}


def step_fields(step: int) -> tuple:
    serializer_class = STEP_SERIALIZERS.get(step)
    if serializer_class is None:
        return ()
    return tuple(serializer_class().fields.keys())


def first_error_field(errors: dict, declared: tuple):
    for name in declared:
        if name in errors:
            return name
    for name in errors:
        if name != 'non_field_errors':
            return name
    return None


def flatten_errors(errors) -> dict:
    out = {}
    for k, v in dict(errors or {}).items():
        if isinstance(v, (list, tuple)):
            out[k] = [str(x) for x in v]
        elif isinstance(v, dict):
            out[k] = [str(x) for sub in v.values() for x in (sub if isinstance(sub, (list, tuple)) else [sub])]
        else:
            out[k] = [str(v)]
    return out
