"""
Script para aplicar as migrations da central de corridas.

Uso:
    python migrations/apply.py

Requer: SUPABASE_URL e SUPABASE_SERVICE_KEY no .env
"""
import os
import sys
from pathlib import Path
from supabase import create_client

# Carregar .env
from dotenv import load_dotenv
load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_KEY")

# Diretorio das migrations
MIGRATIONS_DIR = Path(__file__).parent

# Ordem das migrations
MIGRATIONS = [
    "001_corridas_schema.sql",
]


def apply_migrations(supabase) -> list[str]:
    """
    Aplica todas as migrations em ordem via RPC exec_sql.

    Returns:
        Migrations que falharam
    """
    falhas = []
    for migration_file in MIGRATIONS:
        path = MIGRATIONS_DIR / migration_file
        if not path.exists():
            print(f"[SKIP] {migration_file} nao encontrado")
            continue

        print(f"[APPLY] {migration_file}...")
        sql = path.read_text(encoding="utf-8")

        try:
            supabase.rpc("exec_sql", {"sql": sql}).execute()
            print(f"[OK] {migration_file}")
        except Exception as e:
            print(f"[ERROR] {migration_file}: {e}")
            falhas.append(migration_file)
    return falhas


if __name__ == "__main__":
    if not SUPABASE_URL or not SUPABASE_KEY:
        print("Erro: SUPABASE_URL e SUPABASE_SERVICE_KEY necessarios no .env")
        sys.exit(1)

    print("=== Migrations Central de Corridas ===")
    print(f"URL: {SUPABASE_URL}")
    print()

    falhas = apply_migrations(create_client(SUPABASE_URL, SUPABASE_KEY))

    if falhas:
        print()
        print("Execute os SQLs manualmente no Supabase SQL Editor:")
        for m in falhas:
            print(f"  - migrations/{m}")
        sys.exit(1)
