"""stmtkit - parse, convert and reconcile bank statements."""

__version__ = "0.1.0"

# Services pull in every codec, so they are resolved on first access
_LAZY_ATTRIBUTES = {
    "ConversionService": "stmtkit.domain.converter",
    "ReconciliationService": "stmtkit.domain.reconciliation",
    "main": "stmtkit.cli.main",
}


def __getattr__(name):
    module_name = _LAZY_ATTRIBUTES.get(name)
    if module_name is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    import importlib

    return getattr(importlib.import_module(module_name), name)
