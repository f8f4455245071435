"""Seed Supabase with a development user's bike data.

Creates a profile, a default location, one bike with a short service history
and an open chain reminder for ``SEED_USER_ID`` so the API has something to
return during local development. Uses the service role key for inserts.

Usage:
    SUPABASE_URL=... SUPABASE_SERVICE_ROLE_KEY=... \
    SEED_USER_ID=<existing-auth-user-uuid> \
    python scripts/seed_dev_data.py

``SEED_USER_ID`` must reference an existing ``auth.users`` record so foreign
key constraints pass.
"""
from __future__ import annotations

import os
import random
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List

from dotenv import load_dotenv

from bikecare.config import Settings
from bikecare.models import parse_identifier
from bikecare.services.profile_service import default_profile_row
from bikecare.services.store import Query, StoreError, SupabaseStore
from bikecare.utils.errors import BadRequestError


@dataclass
class SeedConfig:
    supabase_url: str
    supabase_key: str
    user_id: str
    services: int = 6


def _resolve_supabase() -> SeedConfig:
    load_dotenv()
    supabase_url = os.getenv("SUPABASE_URL") or os.getenv("SUPABASE_PROJECT_URL")
    supabase_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    user_id = os.getenv("SEED_USER_ID")

    missing = [
        name
        for name, value in (
            ("SUPABASE_URL", supabase_url),
            ("SUPABASE_SERVICE_ROLE_KEY", supabase_key),
            ("SEED_USER_ID", user_id),
        )
        if not value
    ]
    if missing:
        raise SystemExit(f"Missing required environment variables: {', '.join(missing)}")

    try:
        user_id = parse_identifier(user_id, "SEED_USER_ID")
    except BadRequestError as exc:
        raise SystemExit(exc.message) from exc

    return SeedConfig(supabase_url=supabase_url, supabase_key=supabase_key, user_id=user_id)


def _store_from_config(config: SeedConfig) -> SupabaseStore:
    return SupabaseStore.from_settings(
        Settings(supabase_url=config.supabase_url, supabase_key=config.supabase_key)
    )


def _seed_profile(store: SupabaseStore, config: SeedConfig) -> bool:
    if store.fetch_one(Query("profiles", columns="id").eq("id", config.user_id)):
        return False
    store.insert("profiles", default_profile_row(config.user_id, "Dev Rider"))
    return True


def _seed_location(store: SupabaseStore, config: SeedConfig) -> Any:
    return store.rpc(
        "insert_location",
        {
            "p_user_id": config.user_id,
            "p_latitude": 52.237,
            "p_longitude": 21.017,
            "p_city": "Warszawa",
            "p_country_code": "PL",
            "p_is_default": True,
            "p_label": "Dom",
        },
    )


def _seed_services(store: SupabaseStore, config: SeedConfig, bike_id: str) -> List[Dict[str, Any]]:
    service_types = ("lancuch", "opony", "klocki_przod", "przeglad_ogolny")
    today = date.today()
    mileage = 800
    records = []
    for index in range(config.services):
        mileage += random.randint(400, 900)
        location = random.choice(["warsztat", "samodzielnie"])
        cost = round(random.uniform(40, 350), 2) if location == "warsztat" else None
        records.append(
            store.insert(
                "service_records",
                {
                    "bike_id": bike_id,
                    "service_date": (today - timedelta(days=30 * (config.services - index))).isoformat(),
                    "mileage_at_service": mileage,
                    "service_type": service_types[index % len(service_types)],
                    "service_location": location,
                    "cost": cost,
                    "currency": "PLN" if cost else None,
                },
            )
        )
    return records


def main() -> None:
    config = _resolve_supabase()
    store = _store_from_config(config)

    print(f"Seeding bike data for user: {config.user_id}")

    try:
        created = _seed_profile(store, config)
        print("Created profile" if created else "Profile already exists")

        location_id = _seed_location(store, config)
        print(f"Inserted location {location_id}")

        bike = store.insert(
            "bikes",
            {
                "user_id": config.user_id,
                "name": "Seed Gravel",
                "type": "gravelowy",
                "current_mileage": 0,
                "status": "active",
            },
        )
        records = _seed_services(store, config, bike["id"])
        last_mileage = records[-1]["mileage_at_service"] if records else 0
        store.update(Query("bikes").eq("id", bike["id"]), {"current_mileage": last_mileage + 150})
        print(f"Inserted bike {bike['id']} with {len(records)} service records")

        store.insert(
            "service_reminders",
            {
                "bike_id": bike["id"],
                "service_type": "kaseta",
                "triggered_at_mileage": last_mileage,
                "interval_km": 9000,
                "target_mileage": last_mileage + 9000,
            },
        )
    except StoreError as exc:
        print(f"[!] seed failed: {exc.message} (code={exc.code})")
        raise SystemExit(1) from exc

    print("Seed complete.")


if __name__ == "__main__":
    main()
