from datetime import datetime, timezone

from sqlalchemy import Column, Enum


def utcnow() -> datetime:
    # naive UTC, so SQLite round-trips compare cleanly
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enum_column(enum_cls, **kw) -> Column:
    """String column restricted to the values of ``enum_cls``."""
    return Column(
        Enum(
            enum_cls,
            native_enum=False,
            length=20,
            validate_strings=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        **kw,
    )
