# Import all models here so Alembic's env.py can discover them via Base.metadata
from audit_trail.models.base import Base  # noqa: F401
from audit_trail.models.document import Document  # noqa: F401
