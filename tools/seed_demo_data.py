import argparse
import json
import os
import random
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from db_utils import connect as db_connect, init_schema

DEFAULT_SQLITE_DB_FILE = os.getenv("DATABASE_FILE", os.path.join(REPO_ROOT, "after_sales.db"))

CUSTOMERS = [
    ("Amina Wanjiku", "0712 345 678"),
    ("Brian Otieno", "0722 111 222"),
    ("Grace Muthoni", "0733 444 555"),
    ("Kevin Kiprop", "0701 987 654"),
    ("Lucy Achieng", "0745 222 333"),
]
PRODUCTS = [
    ("Linen Shirt", 2500),
    ("Ankara Dress", 4200),
    ("Tailored Trousers", 3100),
    ("Kitenge Blazer", 5800),
    ("Maxi Skirt", 2900),
]
COLORS = ["Black", "White", "Navy", "Maroon", "Olive", "Mustard"]
STATUSES = ["completed", "completed", "completed", "pending", "to_deliver"]


def _ts(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S+00:00")


def _measurements_comment() -> str:
    return "Measurements: Size={}, Bust={}, Waist={}, Hips={}".format(
        random.choice(["S", "M", "L", "XL"]), random.randint(30, 44), random.randint(24, 38), random.randint(34, 48)
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo customers, products and orders into the local database.")
    parser.add_argument("--rows", type=int, default=60, help="Number of demo orders to insert.")
    parser.add_argument("--days", type=int, default=90, help="Spread demo data across last N days.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable data.")
    parser.add_argument("--dry-run", action="store_true", help="Print what would happen, do not write.")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)

    now = datetime.now(timezone.utc)
    orders: List[Tuple] = []
    for _ in range(args.rows):
        created = now - timedelta(days=random.randint(0, max(args.days, 1)), hours=random.randint(0, 23))
        status = random.choice(STATUSES)
        completed = created + timedelta(days=random.randint(1, 5)) if status == "completed" else None
        customer_idx = random.randrange(len(CUSTOMERS))
        product_idx = random.randrange(len(PRODUCTS))
        color = random.choice(COLORS)
        price = PRODUCTS[product_idx][1]

        items = None
        if random.random() < 0.3:
            picks = random.sample(range(len(PRODUCTS)), k=2)
            items = json.dumps(
                [{"product_name": PRODUCTS[i][0], "color": random.choice(COLORS), "price": PRODUCTS[i][1]} for i in picks]
            )

        # Some legacy rows carry the customer inline instead of a foreign key.
        walk_in = random.random() < 0.15
        orders.append(
            (
                None if walk_in else customer_idx + 1,
                product_idx + 1,
                CUSTOMERS[customer_idx][0] if walk_in else None,
                CUSTOMERS[customer_idx][1] if walk_in else None,
                PRODUCTS[product_idx][0],
                color,
                price,
                items,
                _measurements_comment() if random.random() < 0.5 else "",
                status,
                _ts(created),
                _ts(completed) if completed else None,
            )
        )

    if args.dry_run:
        print(f"Would insert {len(CUSTOMERS)} customers, {len(PRODUCTS)} products and {len(orders)} orders")
        print(f"Completed orders: {sum(1 for o in orders if o[9] == 'completed')}")
        return

    init_schema(default_sqlite_db_file=DEFAULT_SQLITE_DB_FILE)
    conn = db_connect(default_sqlite_db_file=DEFAULT_SQLITE_DB_FILE)
    try:
        for idx, (name, phone) in enumerate(CUSTOMERS, start=1):
            conn.execute(
                "INSERT INTO customers (id, name, phone, created_at) VALUES (?, ?, ?, ?) ON CONFLICT(id) DO NOTHING",
                (idx, name, phone, _ts(now)),
            )
        for idx, (name, price) in enumerate(PRODUCTS, start=1):
            conn.execute(
                "INSERT INTO products (id, name, image_url, price) VALUES (?, ?, ?, ?) ON CONFLICT(id) DO NOTHING",
                (idx, name, None, price),
            )
        for row in orders:
            conn.execute(
                """
                INSERT INTO orders (customer_id, product_id, customer_name, customer_phone, product_name, color,
                                    price, items, comments, status, created_at, completed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                row,
            )
        conn.commit()
        print(f"Seeded {len(orders)} orders ({sum(1 for o in orders if o[9] == 'completed')} completed).")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
