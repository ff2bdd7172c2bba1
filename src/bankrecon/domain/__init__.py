"""Domain layer for bankrecon application."""

__all__ = [
    "StatementImportService",
    "MatchingService",
    "ReviewService",
    "CategoryRuleService",
]

_SERVICES = {
    "StatementImportService": "bankrecon.domain.statement_import",
    "MatchingService": "bankrecon.domain.matching",
    "ReviewService": "bankrecon.domain.review",
    "CategoryRuleService": "bankrecon.domain.category_rules",
}


# Services are imported lazily; parsers import entities and errors from here
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
