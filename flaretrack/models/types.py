"""Column types shared by the models.

JSON columns are stored as JSONB on PostgreSQL and as plain JSON elsewhere
(SQLite in the test suite).
"""
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

JSONType = JSON().with_variant(JSONB(), "postgresql")
