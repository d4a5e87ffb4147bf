#!/usr/bin/env python3
"""
Script para gestionar la base de datos del ledger.

Migraciones con Alembic (scripts en app/database/migrations) más los
atajos de desarrollo para crear tablas y sembrar el plan de cuentas.
"""
import sys
from pathlib import Path

from alembic.config import Config
from alembic import command

from app.core.config import settings

root_dir = Path(__file__).parent


def get_alembic_config():
    """Configuración de Alembic sin alembic.ini: todo sale de settings."""
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(root_dir / "app" / "database" / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    return alembic_cfg


def create_migration(message: str):
    """Crear nueva migración (autogenerada desde los modelos)."""
    command.revision(get_alembic_config(), autogenerate=True, message=message)
    print(f"Migración creada: {message}")


def run_migrations():
    command.upgrade(get_alembic_config(), "head")
    print("Migraciones ejecutadas exitosamente")


def rollback_migration():
    command.downgrade(get_alembic_config(), "-1")
    print("Rollback ejecutado exitosamente")


def show_history():
    command.history(get_alembic_config())


def show_current():
    command.current(get_alembic_config())


def init_db():
    """Crear tablas directamente y sembrar el plan de cuentas por defecto."""
    from app.database.database import Base, SessionLocal, engine
    from app.modules.accounts.seed_data import seed_chart_of_accounts
    import app.modules.accounts.models  # noqa: F401
    import app.modules.journal.models  # noqa: F401
    import app.modules.pos.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        created = seed_chart_of_accounts(session)
    finally:
        session.close()
    print(f"Tablas creadas; {created} cuentas sembradas")


COMMANDS = {
    "upgrade": run_migrations,
    "downgrade": rollback_migration,
    "history": show_history,
    "current": show_current,
    "init-db": init_db,
}


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Uso:")
        print("  python migrate.py create 'message'  # Crear migración")
        print("  python migrate.py upgrade            # Ejecutar migraciones")
        print("  python migrate.py downgrade          # Rollback")
        print("  python migrate.py history            # Ver historial")
        print("  python migrate.py current            # Ver actual")
        print("  python migrate.py init-db            # Crear tablas y plan de cuentas")
        sys.exit(1)

    action = sys.argv[1]
    if action == "create":
        if len(sys.argv) < 3:
            print("Error: Se requiere un mensaje para la migración")
            sys.exit(1)
        create_migration(sys.argv[2])
    elif action in COMMANDS:
        COMMANDS[action]()
    else:
        print(f"Comando desconocido: {action}")
        sys.exit(1)
