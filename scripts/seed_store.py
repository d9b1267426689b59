#!/usr/bin/env python3
"""
Generate and load seed data for the record store.

Usage:
    python scripts/seed_store.py --generate data/seed.json
    python scripts/seed_store.py --load data/seed.json --redis-url redis://localhost:6379

A generated file can be served directly with DATA_SOURCE=memory and
SEED_DATA_PATH, or loaded into Redis for DATA_SOURCE=redis.
"""

import argparse
import asyncio
import json
import sys
from datetime import timedelta
from pathlib import Path
from uuid import uuid4

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np

from app.core.logging import setup_logging, get_logger
from app.core.timeutils import utc_now
from app.schemas.records import (
    ClinicalEvent,
    DosageRecord,
    DosageSchedule,
    EventCategory,
    EventSeverity,
    Medication,
)
from app.storage.redis_store import RedisRecordStore

setup_logging()
logger = get_logger(__name__)


def generate_seed(days: int, seed: int) -> dict:
    """Synthetic history for one patient on two medications."""
    rng = np.random.default_rng(seed)
    now = utc_now().replace(minute=0, second=0, microsecond=0)
    patient_id = uuid4()

    medications = [
        Medication(name="Levetiracetam", generic_name="levetiracetam", unit="mg"),
        Medication(name="Lamotrigine", generic_name="lamotrigine", unit="mg"),
    ]
    categories = list(EventCategory)
    severities = list(EventSeverity)

    dosages = []
    events = []
    for day in range(days, 0, -1):
        morning = now - timedelta(days=day) + timedelta(hours=8 - now.hour)
        for medication, schedule, hours in ((medications[0], DosageSchedule.AM, 0),
                                            (medications[1], DosageSchedule.PM, 12)):
            dosages.append(DosageRecord(
                patient_id=patient_id,
                medication_id=medication.id,
                administration_time=morning + timedelta(hours=hours),
                dosage_amount=500 if schedule is DosageSchedule.AM else 100,
                schedule=schedule,
                administered=bool(rng.random() < 0.85),
            ))

        for _ in range(rng.poisson(0.8)):
            category = categories[rng.choice(len(categories), p=[0.5, 0.1, 0.1, 0.05, 0.05, 0.1, 0.1])]
            events.append(ClinicalEvent(
                patient_id=patient_id,
                event_time=morning + timedelta(minutes=int(rng.integers(0, 14 * 60))),
                title=category.value.replace("_", " ").title(),
                severity=severities[rng.choice(len(severities), p=[0.45, 0.35, 0.15, 0.05])],
                category=category,
                weight_kg=round(float(rng.normal(72, 1.5)), 1),
                height_cm=175,
            ))

    logger.info(
        "Generated seed data",
        extra={"patient_id": str(patient_id), "events": len(events), "dosages": len(dosages)}
    )
    return {
        "medications": [m.model_dump(mode="json") for m in medications],
        "events": [e.model_dump(mode="json") for e in events],
        "dosages": [d.model_dump(mode="json") for d in dosages],
    }


async def load_into_redis(path: Path, redis_url: str) -> None:
    """Validate a seed file and append its records to Redis."""
    payload = json.loads(path.read_text(encoding="utf-8"))

    store = RedisRecordStore(url=redis_url)
    await store.connect()
    try:
        for item in payload.get("medications", []):
            await store.add_medication(Medication.model_validate(item))
        for item in payload.get("events", []):
            await store.add_event(ClinicalEvent.model_validate(item))
        for item in payload.get("dosages", []):
            await store.add_dosage(DosageRecord.model_validate(item))
    finally:
        await store.close()

    logger.info(f"Loaded {path} into {redis_url}")


async def main():
    parser = argparse.ArgumentParser(
        description="Generate and load record store seed data"
    )
    parser.add_argument("--generate", type=Path, help="Write a synthetic seed file to this path")
    parser.add_argument("--days", type=int, default=60, help="Days of history to generate")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--load", type=Path, help="Load this seed file into Redis")
    parser.add_argument("--redis-url", type=str, default="redis://localhost:6379")

    args = parser.parse_args()

    if not args.generate and not args.load:
        parser.error("nothing to do, pass --generate and/or --load")

    if args.generate:
        args.generate.parent.mkdir(parents=True, exist_ok=True)
        args.generate.write_text(json.dumps(generate_seed(args.days, args.seed), indent=2), encoding="utf-8")
        logger.info(f"Wrote {args.generate}")

    if args.load:
        await load_into_redis(args.load, args.redis_url)


if __name__ == "__main__":
    asyncio.run(main())
