from __future__ import annotations

import re
from django.core.exceptions import ValidationError
from django.utils.translation import gettext as _


class PasswordComplexityValidator:
    """Require a mix of character classes for stronger passwords.

    Rules (in addition to minimum length configured separately): at least
    one uppercase letter, one lowercase letter, one digit and one symbol.
    Every missing class is reported in a single error.
    """

    rules = (
        (re.compile(r"[A-Z]"), "password_no_upper", _("Password must contain an uppercase letter.")),
        (re.compile(r"[a-z]"), "password_no_lower", _("Password must contain a lowercase letter.")),
        (re.compile(r"\d"), "password_no_digit", _("Password must contain a digit.")),
        (re.compile(r"[^A-Za-z0-9]"), "password_no_symbol", _("Password must contain a symbol.")),
    )

    def validate(self, password: str, user=None):  # noqa: D401
        errors = [
            ValidationError(message, code=code)
            for pattern, code, message in self.rules
            if not pattern.search(password or "")
        ]
        if errors:
            raise ValidationError(errors)

    def get_help_text(self):  # noqa: D401
        return _("Password must include uppercase, lowercase, digit, and symbol.")
