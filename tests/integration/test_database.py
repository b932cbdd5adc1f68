"""Integration tests for database models."""

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable

pytestmark = pytest.mark.integration


class TestDatabase:
    def test_models_importable(self):
        from src.db.models import AuditLog, FraudScore, PaymentMethod, Transaction, User

        assert User.__tablename__ == "users"
        assert PaymentMethod.__tablename__ == "payment_methods"
        assert Transaction.__tablename__ == "transactions"
        assert FraudScore.__tablename__ == "fraud_scores"
        assert AuditLog.__tablename__ == "audit_logs"

    def test_transaction_model_fields(self):
        from src.db.models import Transaction

        columns = {c.name for c in Transaction.__table__.columns}
        assert {"amount", "currency", "status", "external_id", "metadata"} <= columns

    def test_fraud_score_one_per_transaction(self):
        from src.db.models import FraudScore

        column = FraudScore.__table__.c.transaction_id
        assert column.unique is True
        fk = next(iter(column.foreign_keys))
        assert fk.target_fullname == "transactions.id"
        assert fk.ondelete == "CASCADE"

    def test_fraud_score_model_fields(self):
        from src.db.models import FraudScore

        columns = {c.name for c in FraudScore.__table__.columns}
        assert {"risk_score", "risk_level", "rules_triggered", "features", "rule_set"} <= columns

    def test_users_email_unique(self):
        from src.db.models import User

        assert User.__table__.c.email.unique is True

    def test_tables_compile_for_postgres(self):
        from src.db.models import Base

        for table in Base.metadata.sorted_tables:
            ddl = str(CreateTable(table).compile(dialect=postgresql.dialect()))
            assert table.name in ddl

    def test_tables_created_in_dependency_order(self):
        from src.db.models import Base

        order = [table.name for table in Base.metadata.sorted_tables]
        assert order.index("users") < order.index("transactions")
        assert order.index("transactions") < order.index("fraud_scores")
