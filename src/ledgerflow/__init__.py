"""Bank statement classification, reconciliation and double-entry bookkeeping."""

__version__ = "0.1.0"

__all__ = ["main", "__version__"]


def __getattr__(name):
    # The CLI pulls in every service; load it only when asked for
    if name == "main":
        from ledgerflow.cli.main import main
        return main
    raise AttributeError(f"module 'ledgerflow' has no attribute '{name}'")
