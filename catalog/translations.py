"""Normalization of translated store documents.

Documents written by older versions of the admin UI (or the seed files) keep
their text in flat top-level fields (`label`, `description`, ...). Newer ones
keep it under `translations[<locale>]`. Every document is classified once into
one of the two shapes below and resolved into a `CanonicalRecord` whose
default-locale content is always fully populated; nothing downstream looks at
the raw shape again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from utils.i18n import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranslatedFieldSpec:
    """Which fields make up the translated sub-object of a record type.

    `primary` falls back to the record id, other `required` fields to '' and
    `optional` fields to None when they cannot be found anywhere.
    """
    record_type: str
    primary: str
    required: Tuple[str, ...] = ()
    optional: Tuple[str, ...] = ()

    @property
    def fields(self) -> Tuple[str, ...]:
        return (self.primary,) + tuple(self.required) + tuple(self.optional)


PROGRAM_FIELDS = TranslatedFieldSpec(
    record_type='program',
    primary='label',
    required=('description', 'termsAndConditions'),
)

PAYMENT_METHOD_FIELDS = TranslatedFieldSpec(
    record_type='payment_method',
    primary='label',
    optional=('accountName', 'additionalInstructions'),
)


@dataclass(frozen=True)
class LegacyShape:
    """Translated text lives in flat top-level fields; no translations map."""
    record_id: str
    flat: Dict[str, Any]
    attributes: Dict[str, Any]


@dataclass(frozen=True)
class CanonicalShape:
    """A `translations` map exists (possibly partial or missing the default locale)."""
    record_id: str
    flat: Dict[str, Any]
    translations: Dict[str, Dict[str, Any]]
    attributes: Dict[str, Any]


RecordShape = Union[LegacyShape, CanonicalShape]


@dataclass(frozen=True)
class CanonicalRecord:
    record_id: str
    id_field: str
    translations: Dict[str, Dict[str, Any]]
    attributes: Dict[str, Any] = field(default_factory=dict)
    default_locale: str = DEFAULT_LANGUAGE

    def localized(self, lang: Optional[str]) -> Dict[str, Any]:
        """Translated content for `lang`, falling back to the default locale."""
        if lang and isinstance(self.translations.get(lang), dict):
            return self.translations[lang]
        return self.translations[self.default_locale]

    def text(self, name: str, lang: Optional[str] = None) -> Any:
        val = self.localized(lang).get(name)
        if val in (None, ''):
            val = self.translations[self.default_locale].get(name)
        return val

    def to_document(self) -> Dict[str, Any]:
        doc = dict(self.attributes)
        doc[self.id_field] = self.record_id
        doc['translations'] = {k: dict(v) for k, v in self.translations.items()}
        return doc


def _clean_str(val: Any) -> Optional[str]:
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def classify(raw: Mapping[str, Any], id_field: str, spec: TranslatedFieldSpec, *, doc_id: Optional[str] = None) -> RecordShape:
    data = dict(raw or {})
    record_id = _clean_str(data.get(id_field)) or _clean_str(doc_id) or ''
    flat = {k: data.get(k) for k in spec.fields if k in data}
    attributes = {
        k: v for k, v in data.items()
        if k not in spec.fields and k not in (id_field, 'translations')
    }
    translations = data.get('translations')
    if isinstance(translations, Mapping):
        clean = {
            str(lang): dict(content)
            for lang, content in translations.items()
            if isinstance(content, Mapping)
        }
        return CanonicalShape(record_id=record_id, flat=flat, translations=clean, attributes=attributes)
    return LegacyShape(record_id=record_id, flat=flat, attributes=attributes)


def _default_content(shape: RecordShape, spec: TranslatedFieldSpec, default_locale: str) -> Tuple[Dict[str, Any], list]:
    existing: Dict[str, Any] = {}
    if isinstance(shape, CanonicalShape):
        existing = dict(shape.translations.get(default_locale) or {})

    content: Dict[str, Any] = {}
    synthesized = []
    for name in spec.fields:
        val = _clean_str(existing.get(name))
        if val is not None:
            content[name] = existing.get(name)
            continue
        if name in existing and name in spec.optional:
            # Explicitly stored as empty/None; keep as is.
            content[name] = existing.get(name) or None
            continue
        flat_val = _clean_str(shape.flat.get(name))
        if name == spec.primary:
            content[name] = flat_val or shape.record_id
            synthesized.append(name)
        elif name in spec.required:
            content[name] = flat_val or ''
            if name not in existing:
                synthesized.append(name)
        else:
            content[name] = flat_val
            if flat_val is not None:
                synthesized.append(name)
    # Keep any extra keys stored under the default locale.
    for k, v in existing.items():
        content.setdefault(k, v)
    return content, synthesized


def resolve(shape: RecordShape, id_field: str, spec: TranslatedFieldSpec, default_locale: str = DEFAULT_LANGUAGE) -> CanonicalRecord:
    content, synthesized = _default_content(shape, spec, default_locale)
    if synthesized:
        logger.warning(
            "%s %r: default-locale (%s) content synthesized from fallbacks for fields %s",
            spec.record_type,
            shape.record_id,
            default_locale,
            ", ".join(synthesized),
        )

    translations: Dict[str, Dict[str, Any]] = {default_locale: content}
    if isinstance(shape, CanonicalShape):
        for lang in SUPPORTED_LANGUAGES:
            if lang == default_locale:
                continue
            other = shape.translations.get(lang)
            if isinstance(other, dict):
                translations[lang] = dict(other)

    return CanonicalRecord(
        record_id=shape.record_id,
        id_field=id_field,
        translations=translations,
        attributes=dict(shape.attributes),
        default_locale=default_locale,
    )


def normalize(
    raw: Mapping[str, Any],
    id_field: str,
    default_locale: str = DEFAULT_LANGUAGE,
    spec: TranslatedFieldSpec = PROGRAM_FIELDS,
    *,
    doc_id: Optional[str] = None,
) -> CanonicalRecord:
    """Turn a raw store document into a CanonicalRecord.

    `doc_id` is used when the document body does not repeat its own id.
    """
    shape = classify(raw, id_field, spec, doc_id=doc_id)
    return resolve(shape, id_field, spec, default_locale)
