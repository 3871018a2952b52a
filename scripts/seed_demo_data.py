from datetime import time

from src.domain.money import to_paise
from src.infrastructure.db.models import Base
from src.infrastructure.db.session import engine, get_db_session
from src.infrastructure.repositories.train_repository import TrainRepository


TRAIN_CATALOG = [
    {
        "name": "Rajdhani Express",
        "origin": "New Delhi",
        "destination": "Mumbai Central",
        "departure_time": time(8, 30),
        "arrival_time": time(16, 45),
        "total_seats": 120,
        "fare": "1850.00",
    },
    {
        "name": "Shatabdi Express",
        "origin": "Chennai Central",
        "destination": "Bangalore",
        "departure_time": time(14, 20),
        "arrival_time": time(21, 15),
        "total_seats": 150,
        "fare": "1520.00",
    },
    {
        "name": "Duronto Express",
        "origin": "Kolkata",
        "destination": "Delhi",
        "departure_time": time(23, 10),
        "arrival_time": time(6, 30),
        "total_seats": 200,
        "fare": "1320.00",
    },
    {
        "name": "Garib Rath Express",
        "origin": "Mumbai",
        "destination": "Ahmedabad",
        "departure_time": time(6, 15),
        "arrival_time": time(11, 30),
        "total_seats": 180,
        "fare": "850.00",
    },
    {
        "name": "Vande Bharat Express",
        "origin": "Delhi",
        "destination": "Varanasi",
        "departure_time": time(6, 0),
        "arrival_time": time(14, 0),
        "total_seats": 160,
        "fare": "2200.00",
    },
    {
        "name": "Tejas Express",
        "origin": "Mumbai",
        "destination": "Goa",
        "departure_time": time(5, 0),
        "arrival_time": time(12, 30),
        "total_seats": 140,
        "fare": "1680.00",
    },
]


def seed_trains(db) -> int:
    """Insert catalog trains that are not present yet. Returns the number added."""
    repo = TrainRepository(db)
    added = 0

    for item in TRAIN_CATALOG:
        # Existing trains keep their live seat counts.
        if repo.get_by_name(item["name"]):
            continue

        repo.create_train(
            name=item["name"],
            origin=item["origin"],
            destination=item["destination"],
            departure_time=item["departure_time"],
            arrival_time=item["arrival_time"],
            total_seats=item["total_seats"],
            fare_paise=to_paise(item["fare"]),
        )
        added += 1

    return added


def main() -> None:
    Base.metadata.create_all(bind=engine)
    with get_db_session() as db:
        added = seed_trains(db)
    print(f"Seed complete: {added} trains added, {len(TRAIN_CATALOG) - added} already present.")


if __name__ == "__main__":
    main()
