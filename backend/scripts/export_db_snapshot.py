"""Export the local order cache as JSON."""

import argparse
import json
from datetime import datetime
from typing import Any

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from canteen_pos.storage.models import (
    Base,
    MenuItemModel,
    MenuModel,
    OrderItemModel,
    OrderModel,
    WalkinItemModel,
    WalkinModel,
)


TABLES = {
    "orders": OrderModel,
    "order_items": OrderItemModel,
    "menus": MenuModel,
    "menu_items": MenuItemModel,
    "walkins": WalkinModel,
    "walkin_items": WalkinItemModel,
}


def _serialize_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _serialize_rows(rows: list[Any]) -> list[dict[str, Any]]:
    result = []
    for row in rows:
        item = {
            column.name: _serialize_value(getattr(row, column.key))
            for column in row.__table__.columns
        }
        result.append(item)
    return result


def export_snapshot(db_url: str, output_path: str) -> dict[str, int]:
    engine = create_engine(db_url)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)

    session = SessionLocal()
    try:
        snapshot = {
            name: _serialize_rows(session.execute(select(model).order_by(model.id)).scalars().all())
            for name, model in TABLES.items()
        }

        with open(output_path, "w", encoding="utf-8") as handle:
            json.dump(snapshot, handle, ensure_ascii=False, indent=2)
    finally:
        session.close()
        engine.dispose()
    return {name: len(rows) for name, rows in snapshot.items()}


def main() -> None:
    parser = argparse.ArgumentParser(description="Export the local order cache as JSON")
    parser.add_argument("--db", default="sqlite:///canteen.db", help="Database URL")
    parser.add_argument("--out", required=True, help="Output JSON file path")
    args = parser.parse_args()

    counts = export_snapshot(args.db, args.out)
    print(f"Snapshot written to {args.out}: {counts}")


if __name__ == "__main__":
    main()
