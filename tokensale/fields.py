from django import forms
from django.core import exceptions
from django.db import models

from .constants import AMOUNT_MAX_DIGITS


class AmountField(models.Field):
    """
    A non-negative integer amount in base units (wei, token micro-units).

    Stored as a zero-padded decimal string so the value round-trips exactly
    on every backend (SQLite keeps only 15 significant digits for numeric
    columns) and string ordering matches numeric ordering.
    Python values are plain ints.
    """
    description = "Integer amount in base units"

    def __init__(self, *args, **kwargs):
        kwargs['max_length'] = AMOUNT_MAX_DIGITS
        kwargs.setdefault('default', 0)
        super().__init__(*args, **kwargs)

    def deconstruct(self):
        name, path, args, kwargs = super().deconstruct()
        del kwargs['max_length']
        return name, path, args, kwargs

    def get_internal_type(self):
        return 'CharField'

    def to_python(self, value):
        if value is None or isinstance(value, int):
            return value
        try:
            return int(str(value).strip())
        except (TypeError, ValueError):
            raise exceptions.ValidationError(
                "'%(value)s' is not a whole amount.",
                code='invalid',
                params={'value': value},
            )

    def get_prep_value(self, value):
        value = super().get_prep_value(value)
        if value is None:
            return None
        value = self.to_python(value)
        if value < 0:
            raise ValueError(f"Amount cannot be negative: {value}")
        text = str(value)
        if len(text) > AMOUNT_MAX_DIGITS:
            raise ValueError(f"Amount exceeds {AMOUNT_MAX_DIGITS} digits: {value}")
        return text.zfill(AMOUNT_MAX_DIGITS)

    def from_db_value(self, value, expression, connection):
        if value is None:
            return None
        return int(value)

    def formfield(self, **kwargs):
        return super().formfield(**{
            'form_class': forms.IntegerField,
            'min_value': 0,
            **kwargs,
        })
