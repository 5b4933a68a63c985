#!/usr/bin/env python3
"""
Seed the reference data the order execution engine resolves at runtime.

This script creates:
- order_statuses rows for every status name the engine requests
- the closure_motives catalog (codes 1-11)
- optionally (--demo) a few unstarted work orders for field testing

Safe to run repeatedly: existing rows are left untouched.
"""

import argparse
import asyncio
import os
import random
import sys
import uuid
from decimal import Decimal

# Add the app directory to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from faker import Faker
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.config import settings
from app.database import Base
from app.models import ClosureMotive, OrderStatus, WorkOrder
from app.schemas.closure_motive import DEFAULT_CLOSURE_MOTIVES

# Initial status of a dispatched order, before the agent starts it
STATUS_ASSIGNED = "ASSIGNED"


def status_names() -> list[str]:
    names = [
        STATUS_ASSIGNED,
        settings.STATUS_IN_EXECUTION,
        settings.STATUS_SECOND_VISIT_PENDING,
        settings.STATUS_CLOSED_BY_AGENT,
    ]
    return list(dict.fromkeys(names))


async def seed_statuses(session) -> dict[str, str]:
    """Create missing statuses. Returns name -> id."""
    result = await session.execute(select(OrderStatus))
    existing = {s.name: s.id for s in result.scalars().all()}

    for name in status_names():
        if name in existing:
            continue
        status = OrderStatus(id=str(uuid.uuid4()), name=name)
        session.add(status)
        existing[name] = status.id
        print(f"  Created status {name}")
    return existing


async def seed_closure_motives(session) -> None:
    result = await session.execute(select(ClosureMotive.code))
    existing = set(result.scalars().all())

    for code, label in DEFAULT_CLOSURE_MOTIVES.items():
        if int(code) in existing:
            continue
        session.add(ClosureMotive(code=int(code), label=label))
        print(f"  Created closure motive {int(code)}: {label}")


async def seed_demo_orders(session, status_id: str, count: int) -> None:
    fake = Faker()
    for _ in range(count):
        order = WorkOrder(
            status_id=status_id,
            client_name=fake.name(),
            client_address=fake.street_address(),
            contract_account=fake.numerify("##########"),
            current_meter_serial=fake.bothify("MTR-####-??").upper(),
            previous_reading=Decimal(random.randint(1000, 90000)),
        )
        session.add(order)
        print(f"  Created demo order for {order.client_name}")


async def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--demo", type=int, default=0, help="number of demo work orders to create")
    parser.add_argument("--create-tables", action="store_true", help="create tables from the models first")
    args = parser.parse_args()

    print("=" * 60)
    print("Reference Data Seeder")
    print("=" * 60)
    print(f"Database: {settings.DATABASE_URL[:30]}...")
    print()

    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    if args.create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        print("Order statuses:")
        statuses = await seed_statuses(session)
        print("\nClosure motives:")
        await seed_closure_motives(session)

        if args.demo:
            print("\nDemo work orders:")
            await seed_demo_orders(session, statuses[STATUS_ASSIGNED], args.demo)

        await session.commit()

    await engine.dispose()
    print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
