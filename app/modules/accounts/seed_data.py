"""
Script para poblar el plan de cuentas por defecto.

Incluye todas las cuentas que usan las reglas de contabilización
(1001-1004, 1200, 2000, 4000). Es idempotente: solo crea los códigos
que todavía no existen.
"""
import logging
from sqlalchemy.orm import Session

from app.database.database import SessionLocal
from app.modules.accounts.models import Account, AccountType

logger = logging.getLogger(__name__)


# (code, name, type, parent code)
DEFAULT_CHART_OF_ACCOUNTS = [
    ("1000", "Cash", AccountType.ASSET, None),
    ("1001", "Cash on Hand", AccountType.ASSET, "1000"),
    ("1002", "Bank - Cards & Transfers", AccountType.ASSET, "1000"),
    ("1003", "Bank - Checks", AccountType.ASSET, "1000"),
    ("1004", "Digital Wallet", AccountType.ASSET, "1000"),
    ("1100", "Accounts Receivable", AccountType.ASSET, None),
    ("1200", "Inventory", AccountType.ASSET, None),
    ("2000", "Accounts Payable", AccountType.LIABILITY, None),
    ("3000", "Owner Equity", AccountType.EQUITY, None),
    ("4000", "Sales Revenue", AccountType.REVENUE, None),
    ("5000", "Cost of Goods Sold", AccountType.EXPENSE, None),
    ("5100", "Operating Expenses", AccountType.EXPENSE, None),
]


def seed_chart_of_accounts(db: Session) -> int:
    """Crear las cuentas por defecto que falten. Retorna cuántas se crearon."""
    existing = {account.code: account for account in db.query(Account).all()}
    created = 0

    # Parents come first in the list, so a single pass resolves parent ids
    for code, name, account_type, parent_code in DEFAULT_CHART_OF_ACCOUNTS:
        if code in existing:
            continue

        parent = existing.get(parent_code) if parent_code else None
        account = Account(
            code=code,
            name=name,
            type=account_type,
            parent_id=parent.id if parent else None,
            is_active=True
        )
        db.add(account)
        db.flush()
        existing[code] = account
        created += 1

    db.commit()
    logger.info(f"Chart of accounts seeded: {created} accounts created")
    return created


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    session = SessionLocal()
    try:
        seed_chart_of_accounts(session)
    finally:
        session.close()
