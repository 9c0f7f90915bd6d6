from __future__ import annotations

import re

from django.core.exceptions import ValidationError


class ComplexityValidator:
    """Require upper and lower case letters, a digit and a symbol."""

    RULES = (
        (re.compile(r"[a-z]"), "password_no_lower", "La contraseña debe incluir al menos una letra minúscula."),
        (re.compile(r"[A-Z]"), "password_no_upper", "La contraseña debe incluir al menos una letra mayúscula."),
        (re.compile(r"\d"), "password_no_digit", "La contraseña debe incluir al menos un número."),
        (re.compile(r"[^\w\s]|_"), "password_no_symbol", "La contraseña debe incluir al menos un símbolo."),
    )

    def validate(self, password: str, user=None) -> None:
        errors = [
            ValidationError(message, code=code)
            for pattern, code, message in self.RULES
            if not pattern.search(password or "")
        ]
        if errors:
            raise ValidationError(errors)

    def get_help_text(self) -> str:
        return "La contraseña debe combinar mayúsculas, minúsculas, números y símbolos."
