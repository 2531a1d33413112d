import argparse
import asyncio
import os
import sys

# Add the project root to the Python path
sys.path.append(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
)

from src.database.base import Base
from src.database.connection import dispose_engine, get_engine
from src.database.models import Order, PaymentLog, PaymentTransaction

# Avoid unused import issues; importing registers the tables on Base.metadata
_ = (Order, PaymentTransaction, PaymentLog)


async def init_db(drop_tables: bool = False):
    engine = get_engine()
    if engine is None:
        raise SystemExit("DATABASE_URL is not set in environment variables.")

    try:
        async with engine.begin() as conn:
            if drop_tables:
                print("Dropping all tables...")
                await conn.run_sync(Base.metadata.drop_all)
                print("Tables dropped.")
            print("Creating tables...")
            await conn.run_sync(Base.metadata.create_all)
            print("Tables created.")
    finally:
        await dispose_engine()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the payment webhook tables.")
    parser.add_argument(
        "--drop", action="store_true", help="Drop existing tables before creating them"
    )
    args = parser.parse_args()
    asyncio.run(init_db(drop_tables=args.drop))
