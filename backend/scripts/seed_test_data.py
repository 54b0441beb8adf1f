"""Create test accounts, the settings row and a couple of orders.

Usage: python -m scripts.seed_test_data
Run from the backend/ directory after `alembic upgrade head`.
"""

import asyncio
from decimal import Decimal

from autocrm.core.database import async_session_factory
from autocrm.models.master import MasterRole
from autocrm.models.order import ItemKind
from autocrm.services.master_service import create_master, get_master_by_phone
from autocrm.services.order_service import create_order
from autocrm.services.setting_service import get_settings

TEST_USERS = [
    {"full_name": "Director", "phone": "+70000000001", "password": "testpass123", "role": MasterRole.director},
    {"full_name": "Ivan Petrov", "phone": "+70000000002", "password": "testpass123", "role": MasterRole.master},
    {"full_name": "Sergey Smirnov", "phone": "+70000000003", "password": "testpass123", "role": MasterRole.master},
]

TEST_ORDERS = [
    {
        "client_name": "Anna Volkova",
        "client_phone": "+79990000001",
        "car_model": "Lada Vesta",
        "car_number": "A123BC77",
        "car_year": 2019,
        "problem_description": "Battery drains overnight",
        "items": [
            {"kind": ItemKind.labor, "name": "Leak current diagnostics", "price": Decimal("2500")},
            {"kind": ItemKind.material, "name": "Wiring loom tape", "price": Decimal("150"), "quantity": Decimal("2")},
        ],
    },
    {
        "client_name": "Oleg Orlov",
        "client_phone": "+79990000002",
        "car_model": "Kia Rio",
        "car_number": "B456EK99",
        "car_year": 2016,
        "problem_description": "Generator not charging",
        "items": [
            {"kind": ItemKind.labor, "name": "Generator replacement", "price": Decimal("4000")},
            {"kind": ItemKind.part, "name": "Voltage regulator", "price": Decimal("1800"), "quantity": Decimal("1")},
        ],
    },
]


async def main():
    async with async_session_factory() as db:
        print("Creating settings row...")
        setting = await get_settings(db)
        print(f"  Owner percentage: {setting.owner_percentage}")

        print("\nCreating test users...")
        masters = []
        for u in TEST_USERS:
            master = await get_master_by_phone(db, u["phone"])
            if master:
                print(f"  User already exists: {u['full_name']} ({master.id})")
            else:
                master = await create_master(db, u["full_name"], u["phone"], u["password"], role=u["role"])
                print(f"  Created {u['role'].value}: {u['full_name']} ({master.id})")
            masters.append(master)

        director, workers = masters[0], masters[1:]

        print("\nCreating test orders...")
        for data in TEST_ORDERS:
            order = await create_order(
                db,
                {**data, "assignments": [{"master_id": w.id, "work_percentage": None} for w in workers]},
                director,
            )
            print(f"  Order {order.id}: {order.car_model}, total {order.total_amount}")

    print("\nDone! Test accounts:")
    for u in TEST_USERS:
        print(f"  {u['phone']} / {u['password']} ({u['role'].value})")


if __name__ == "__main__":
    asyncio.run(main())
