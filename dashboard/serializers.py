from rest_framework import serializers

from catalog.records import DISCOUNT_TYPES, PROGRAM_CATEGORIES, Coupon, PaymentMethod, Program
from utils.i18n import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES


RECORD_ID_REGEX = r'^[A-Za-z0-9_]+$'
RECORD_ID_MESSAGE = 'Use letters, digits and underscores only (no spaces).'


class ProgramTranslationSerializer(serializers.Serializer):
    label = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    terms_and_conditions = serializers.CharField(required=False, allow_blank=True, default='')

    def to_document(self, data):
        return {
            'label': data['label'],
            'description': data.get('description') or '',
            'termsAndConditions': data.get('terms_and_conditions') or '',
        }


class PaymentMethodTranslationSerializer(serializers.Serializer):
    label = serializers.CharField(max_length=200)
    account_name = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    additional_instructions = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)

    def to_document(self, data):
        return {
            'label': data['label'],
            'accountName': data.get('account_name') or None,
            'additionalInstructions': data.get('additional_instructions') or None,
        }


class TranslatedRecordSerializer(serializers.Serializer):
    """Base for records whose text lives in `translations[locale]`."""
    translation_serializer_class = None

    translations = serializers.DictField(child=serializers.DictField())

    def validate_translations(self, value):
        unknown = [k for k in value if k not in SUPPORTED_LANGUAGES]
        if unknown:
            raise serializers.ValidationError(f"Unsupported locale(s): {', '.join(sorted(unknown))}")
        if DEFAULT_LANGUAGE not in value:
            raise serializers.ValidationError(f"Content for the default locale '{DEFAULT_LANGUAGE}' is required.")

        out = {}
        errors = {}
        for lang, content in value.items():
            ser = self.translation_serializer_class(data=content)
            if not ser.is_valid():
                errors[lang] = ser.errors
                continue
            out[lang] = ser.to_document(ser.validated_data)
        if errors:
            raise serializers.ValidationError(errors)
        return out


class ProgramInputSerializer(TranslatedRecordSerializer):
    translation_serializer_class = ProgramTranslationSerializer

    id = serializers.RegexField(RECORD_ID_REGEX, max_length=64, error_messages={'invalid': RECORD_ID_MESSAGE})
    price = serializers.FloatField(min_value=0)
    category = serializers.ChoiceField(choices=PROGRAM_CATEGORIES)
    age_range = serializers.CharField(required=False, allow_blank=True, default='')
    duration = serializers.CharField(required=False, allow_blank=True, default='')
    schedule = serializers.CharField(required=False, allow_blank=True, default='')
    is_child_program = serializers.BooleanField(required=False, default=False)

    def to_program(self) -> Program:
        d = self.validated_data
        doc = {
            'id': d['id'],
            'price': d['price'],
            'category': d['category'],
            'isChildProgram': d.get('is_child_program', False),
            'translations': d['translations'],
        }
        for key, doc_key in (('age_range', 'ageRange'), ('duration', 'duration'), ('schedule', 'schedule')):
            if d.get(key):
                doc[doc_key] = d[key]
        return Program.from_document(doc)


class PaymentMethodInputSerializer(TranslatedRecordSerializer):
    translation_serializer_class = PaymentMethodTranslationSerializer

    value = serializers.RegexField(RECORD_ID_REGEX, max_length=64, error_messages={'invalid': RECORD_ID_MESSAGE})
    account_number = serializers.CharField(required=False, allow_blank=True, default='')
    logo_placeholder = serializers.CharField(required=False, allow_blank=True, default='')
    data_ai_hint = serializers.CharField(required=False, allow_blank=True, default='')

    def to_payment_method(self) -> PaymentMethod:
        d = self.validated_data
        doc = {'value': d['value'], 'translations': d['translations']}
        if d.get('account_number'):
            doc['accountNumber'] = d['account_number']
        if d.get('logo_placeholder'):
            doc['logoPlaceholder'] = d['logo_placeholder']
        if d.get('data_ai_hint'):
            doc['dataAiHint'] = d['data_ai_hint']
        return PaymentMethod.from_document(doc)


class CouponInputSerializer(serializers.Serializer):
    id = serializers.RegexField(RECORD_ID_REGEX, max_length=64, error_messages={'invalid': RECORD_ID_MESSAGE})
    coupon_code = serializers.CharField(max_length=64)
    discount_type = serializers.ChoiceField(choices=DISCOUNT_TYPES)
    discount_value = serializers.FloatField(min_value=0)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    expiry_date = serializers.DateTimeField(required=False, allow_null=True, default=None)
    is_active = serializers.BooleanField(required=False, default=True)

    def validate(self, attrs):
        if attrs['discount_type'] == 'percentage' and attrs['discount_value'] > 100:
            raise serializers.ValidationError({'discount_value': ['A percentage discount cannot exceed 100.']})
        return attrs

    def to_coupon(self) -> Coupon:
        d = self.validated_data
        return Coupon(
            id=d['id'],
            coupon_code=d['coupon_code'].strip(),
            discount_type=d['discount_type'],
            discount_value=d['discount_value'],
            description=d.get('description') or '',
            expiry_date=d.get('expiry_date'),
            is_active=d.get('is_active', True),
        )


class RegistrationUpdateSerializer(serializers.Serializer):
    payment_verified = serializers.BooleanField(required=False)
    payment_verification_details = serializers.DictField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Provide payment_verified and/or payment_verification_details.')
        return attrs

    def to_document(self):
        d = self.validated_data
        doc = {}
        if 'payment_verified' in d:
            doc['paymentVerified'] = d['payment_verified']
        if 'payment_verification_details' in d:
            doc['paymentVerificationDetails'] = d['payment_verification_details']
        return doc
