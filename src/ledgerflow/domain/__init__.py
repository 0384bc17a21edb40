"""Domain layer for ledgerflow.

Services are imported from their modules directly (for example
``ledgerflow.domain.ledger.LedgerService``); this package stays import-light
so the database layer can depend on ``ledgerflow.domain.entities`` without a
cycle.
"""
