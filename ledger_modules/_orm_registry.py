"""
Module ORM Registry (``ledger_modules._orm_registry``).

Responsibility
--------------
Ensure every SQLAlchemy ORM model (kernel and modules) is imported so
that ``Base.metadata`` contains its table before tables are created.
``ledger_kernel.db.engine.create_tables()`` calls this first.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by the kernel engine
helpers; nothing else in the kernel depends on ``ledger_modules``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``ledger_modules.*.orm`` module.

    This function is idempotent -- repeated calls are harmless.
    """
    # fmt: off
    import ledger_kernel.models  # noqa: F401
    import ledger_kernel.services.sequence_service  # noqa: F401  # sequence_counters
    import ledger_modules.tax.orm  # noqa: F401
    # fmt: on
