"""
Value Normalization Layer.

Turns raw spreadsheet cells into comparable values:

1. Currency amounts written the US way (``1,234.56``) or the European way
   (``1 234,56 €``) are parsed into floats.
2. Person names are folded to lower case with their diacritics removed so
   that ``"Lefèvre Zoé"`` and ``"lefevre zoe"`` compare equal.
3. Provider names are only lower-cased.
"""

from __future__ import annotations

import re
import unicodedata

from compta_loader.errors import AmountParseError, EmptyAmountError
from compta_loader.logging_setup import get_logger

logger = get_logger("normalizer")


class ValueNormalizer:
    """Stateless cell normaliser.  All methods are pure functions."""

    # Only the euro is handled: the back end knows no other currency.
    _CURRENCY = "€"

    # Optional euro sign, comma-grouped thousands, optional 2-digit cents.
    _US_AMOUNT_RE = re.compile(r"^€?\s?(\d{1,3}(,\d{3})*|\d+)(\.\d{2})?\s?€?$", re.ASCII)

    # What ``float()`` would accept but a plain decimal number must not contain
    _NON_DECIMAL_RE = re.compile(r"[_]|inf|nan", re.IGNORECASE)

    # ------------------------------------------------------------------ #
    # Amounts
    # ------------------------------------------------------------------ #

    def parse_amount(self, text: str) -> float:
        """Parse a currency amount in US or European formatting.

        Parameters
        ----------
        text:
            The cell content, e.g. ``"1,234.56"``, ``"1234,56"`` or
            ``"1 234,56 €"`` (regular or non-breaking spaces).

        Returns
        -------
        float
            The numeric amount.

        Raises
        ------
        EmptyAmountError
            If *text* is blank.
        AmountParseError
            If the cleaned text is not a number; carries both strings.
        """
        if not text or not text.strip():
            raise EmptyAmountError()

        cleaned = text.replace(self._CURRENCY, "")
        if self._US_AMOUNT_RE.match(text):
            cleaned = cleaned.replace(",", "").strip()
        else:
            cleaned = (
                cleaned.replace(".", "")
                .replace(" ", "")
                .replace("\u00a0", "")
                .replace(",", ".")
            )

        if self._NON_DECIMAL_RE.search(cleaned):
            raise AmountParseError(text, cleaned)
        try:
            value = float(cleaned)
        except ValueError:
            raise AmountParseError(text, cleaned) from None

        logger.debug("parse_amount: %r → %s", text, value)
        return value

    # ------------------------------------------------------------------ #
    # Names
    # ------------------------------------------------------------------ #

    @staticmethod
    def strip_diacritics(text: str) -> str:
        """Remove combining marks: NFD, drop ``Mn`` characters, then NFC."""
        decomposed = unicodedata.normalize("NFD", text)
        stripped = "".join(
            ch for ch in decomposed if unicodedata.category(ch) != "Mn"
        )
        return unicodedata.normalize("NFC", stripped)

    def normalize_person(self, name: str) -> str:
        """Key form of a person name: lower case, no diacritics."""
        return self.strip_diacritics(name.lower())

    @staticmethod
    def normalize_provider(name: str) -> str:
        """Key form of a provider name: lower case only."""
        return name.lower()


_default = ValueNormalizer()


def parse_amount(text: str) -> float:
    """Module-level shortcut for ``ValueNormalizer().parse_amount``."""
    return _default.parse_amount(text)


def normalize_person(name: str) -> str:
    return _default.normalize_person(name)


def normalize_provider(name: str) -> str:
    return _default.normalize_provider(name)
