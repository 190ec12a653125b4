"""
Error taxonomy for the quote engine.

Compliance warnings and flags are not exceptions — they travel as
ComplianceVerdict records and end up in the documents verbatim.
"""


class InvalidQuantity(ValueError):
    """Malformed numeric input to a calculator function (zero, negative, NaN)."""


class MissingRateKey(KeyError):
    """A rate table lacks a key the engine needs. Configuration bug, never user error."""

    def __init__(self, key: str, table: str = "rates"):
        self.key = key
        self.table = table
        super().__init__(f"Rate key '{key}' missing from {table} table")

    def __str__(self) -> str:
        return self.args[0]


class ComplianceStop(Exception):
    """One or more STOP verdicts block client-facing document assembly."""

    def __init__(self, errors: list):
        self.errors = list(errors)
        super().__init__("Generation blocked: " + "; ".join(self.errors))
