"""Pytest configuration: in-memory database and scheme fixtures."""

import os
from datetime import date
from decimal import Decimal

# Set test settings BEFORE any imports from strata
# so the module-level engine never touches a file database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOCALE", "en")
os.environ.setdefault("CURRENCY", "AUD")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from strata.config import reset_settings  # noqa: E402
from strata.models import (  # noqa: E402
    AccountType,
    Base,
    ChartOfAccount,
    FinancialYear,
    FundType,
    LevyFrequency,
    LineType,
    Transaction,
    TransactionLine,
    TransactionType,
)
from strata.schemas.levies import LevyScheduleCreate  # noqa: E402
from strata.services.collaborators import PdfDocumentRenderer  # noqa: E402
from strata.services.context import RequestContext  # noqa: E402
from strata.services.levy_schedule_service import LevyScheduleService  # noqa: E402
from strata.services.report_service import TRUST_ACCOUNT_CODES  # noqa: E402
from strata.services.scheme_service import SchemeService  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Re-read settings for every test so monkeypatched env vars apply."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def db_session():
    """Create test database session."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def ctx():
    """Caller acting for organisation 1."""
    return RequestContext(user_id=7, organisation_id=1)


@pytest.fixture
def other_ctx():
    """Caller from a different organisation."""
    return RequestContext(user_id=8, organisation_id=2)


@pytest.fixture
def scheme(db_session, ctx):
    """Scheme with levies due on the 1st."""
    return SchemeService(db_session).create_scheme(
        ctx,
        "Harbour View",
        "SP12345",
        levy_due_day=1,
        street_address="1 Harbour Street",
        suburb="Sydney",
        state="NSW",
        postcode="2000",
    )


@pytest.fixture
def lots(db_session, scheme):
    """Four lots with entitlements 10/20/30/40 (total 100)."""
    service = SchemeService(db_session)
    return [
        service.add_lot(
            scheme,
            str(number),
            Decimal(entitlement),
            unit_number=str(number),
            owner_name=f"Owner {number}",
            owner_email=f"owner{number}@example.com",
        )
        for number, entitlement in ((1, 10), (2, 20), (3, 30), (4, 40))
    ]


@pytest.fixture
def schedule_payload():
    """Quarterly FY2027 schedule: 3000 admin and 1000 capital works per quarter."""
    return LevyScheduleCreate(
        budget_year_start=date(2026, 7, 1),
        budget_year_end=date(2027, 6, 30),
        admin_fund_total=Decimal("12000.00"),
        capital_works_fund_total=Decimal("4000.00"),
        frequency=LevyFrequency.QUARTERLY,
        periods_per_year=4,
    )


@pytest.fixture
def schedule(db_session, ctx, scheme, schedule_payload):
    """Persisted quarterly schedule with its four periods."""
    outcome = LevyScheduleService(db_session).create_schedule(ctx, scheme, schedule_payload)
    assert outcome.ok
    return outcome.value


@pytest.fixture
def financial_year(db_session, scheme):
    """Current financial year FY2027 with opening balances."""
    fy = FinancialYear(
        scheme_id=scheme.id,
        year_label="2026/27",
        start_date=date(2026, 7, 1),
        end_date=date(2027, 6, 30),
        is_current=True,
        admin_opening_balance=Decimal("5000.00"),
        capital_opening_balance=Decimal("20000.00"),
    )
    db_session.add(fy)
    db_session.commit()
    return fy


@pytest.fixture
def accounts(db_session):
    """Organisation-default chart of accounts, keyed by code."""
    rows = [
        ("1100", "Admin Fund Trust Account", AccountType.ASSET, FundType.ADMIN),
        ("1200", "Capital Works Trust Account", AccountType.ASSET, FundType.CAPITAL_WORKS),
        ("4100", "Levy Income", AccountType.INCOME, None),
        ("6100", "Insurance", AccountType.EXPENSE, FundType.ADMIN),
        ("6200", "Cleaning", AccountType.EXPENSE, FundType.ADMIN),
        ("7100", "Roof Replacement", AccountType.EXPENSE, FundType.CAPITAL_WORKS),
    ]
    created = {}
    for code, name, account_type, fund_type in rows:
        account = ChartOfAccount(
            scheme_id=None,
            code=code,
            name=name,
            account_type=account_type,
            fund_type=fund_type,
            is_active=True,
        )
        db_session.add(account)
        created[code] = account
    db_session.commit()
    return created


@pytest.fixture
def post_transaction(db_session, scheme, accounts):
    """Factory posting a balanced receipt or payment against a fund's trust account."""

    def _post(day, transaction_type, fund_type, category_code, amount, lot=None, description=None):
        trust = accounts[TRUST_ACCOUNT_CODES[fund_type]]
        category = accounts[category_code]
        amount = Decimal(amount)
        txn = Transaction(
            scheme_id=scheme.id,
            transaction_date=day,
            transaction_type=transaction_type,
            fund_type=fund_type,
            category_id=category.id,
            lot_id=lot.id if lot else None,
            amount=amount,
            description=description,
        )
        if transaction_type == TransactionType.RECEIPT:
            debit, credit = trust, category
        else:
            debit, credit = category, trust
        txn.lines = [
            TransactionLine(account_id=debit.id, line_type=LineType.DEBIT, amount=amount),
            TransactionLine(account_id=credit.id, line_type=LineType.CREDIT, amount=amount),
        ]
        db_session.add(txn)
        db_session.commit()
        return txn

    return _post


class RecordingRenderer(PdfDocumentRenderer):
    """PDF renderer that keeps the template and data of every render."""

    def __init__(self):
        super().__init__()
        self.rendered = []

    async def render(self, template_name, data):
        self.rendered.append((template_name, data))
        return await super().render(template_name, data)


@pytest.fixture
def renderer():
    return RecordingRenderer()
