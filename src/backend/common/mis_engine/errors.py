from __future__ import annotations


class RuleNotFoundError(KeyError):
    pass


class DuplicateRuleError(ValueError):
    pass


class TransactionNotFoundError(KeyError):
    pass
