import json
import random
import sqlite3
from datetime import timedelta
from pathlib import Path

from admatrix_core.metrics.day_buckets import today_ist
from admatrix_core.metrics.schema import init_database
from admatrix_core.metrics.store import SqliteMetricStore

# Configuration
DB_PATH = "data/admatrix.db"
STOREFRONTS_PATH = "data/storefronts.json"
DAYS_BACK = 7

# Storefronts to seed
STOREFRONTS = [
    {
        "id": "gopivaid",
        "name": "gopivaid",
        "shopify_store_url": "https://gopivaid.myshopify.com",
        "shopify_token": "shpat_demo_token_1",
        "meta_account_id": "act_123456789",
        "daily_fb_spend": (300, 800),
        "daily_google_spend": (200, 500),
        "daily_orders": (20, 70),
        "aov": 75.0,
    },
    {
        "id": "juhi",
        "name": "juhi",
        "shopify_store_url": "https://juhi.myshopify.com",
        "shopify_token": "shpat_demo_token_2",
        "meta_account_id": "act_111222333",
        "daily_fb_spend": (250, 650),
        "daily_google_spend": (150, 400),
        "daily_orders": (15, 55),
        "aov": 62.0,
    },
]

REGISTRY_FIELDS = ("id", "name", "shopify_store_url", "shopify_token", "meta_account_id")


def seed_data():
    Path(STOREFRONTS_PATH).parent.mkdir(parents=True, exist_ok=True)
    with open(STOREFRONTS_PATH, "w", encoding="utf-8") as handle:
        json.dump(
            [{key: sf[key] for key in REGISTRY_FIELDS} for sf in STOREFRONTS],
            handle,
            indent=2,
        )
    print(f"Wrote {len(STOREFRONTS)} storefronts to {STOREFRONTS_PATH}")

    init_database(DB_PATH)
    conn = sqlite3.connect(DB_PATH)
    store = SqliteMetricStore(conn)

    print(f"Seeding metrics for the last {DAYS_BACK} days...")

    today = today_ist()
    for day in range(DAYS_BACK):
        metric_date = today - timedelta(days=day)

        for sf in STOREFRONTS:
            orders = random.randint(*sf["daily_orders"])
            store.upsert_daily_metric(
                sf["id"],
                metric_date,
                {
                    "facebook_spend": round(random.uniform(*sf["daily_fb_spend"]), 2),
                    "google_spend": round(random.uniform(*sf["daily_google_spend"]), 2),
                    "sold_orders": orders,
                    "order_value": round(orders * (sf["aov"] + random.uniform(-5, 5)), 2),
                    "sold_items": orders + random.randint(0, orders),
                },
            )

    conn.close()
    print("✅ Database seeded with sample storefront metrics.")

if __name__ == "__main__":
    seed_data()
