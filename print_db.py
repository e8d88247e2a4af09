"""Print every stored collection and pending submission in the database.

Reuses the same `DATABASE_DIR` behavior as the application via
`utils.database_init.AsyncDatabaseInitializer`.

Run: set the `DATABASE_DIR` environment variable (or point it to the
      repository `database` folder) and run `python print_db.py`.
"""
import asyncio
from typing import Dict, List

from dal.collection_dal import CollectionDAL
from models.image_record import SubmissionCollection, UserCollection
from services.slot_store import sorted_by_name
from utils.database_init import AsyncDatabaseInitializer


def format_collections(
    user_collections: Dict[str, UserCollection],
    submissions: Dict[str, SubmissionCollection],
) -> str:
    """Render collections as indented text, images listed alphabetically.

    Args:
        user_collections: Personal collections keyed by user id.
        submissions: Pending submissions keyed by user id.

    Returns:
        The text block printed by `main()`.
    """
    lines: List[str] = []
    for user_id in sorted(user_collections):
        collection = user_collections[user_id]
        lines.append(f"User {user_id} (last seen {collection.last_seen_at})")
        for ordinal, record in enumerate(sorted_by_name(collection.records), start=1):
            lines.append(f"  {ordinal}. {record.name} - {record.source_label} [slot {record.slot_index}]")
    if submissions:
        lines.append("Pending submissions")
        for user_id in sorted(submissions):
            for record in sorted_by_name(submissions[user_id].records):
                lines.append(f"  {user_id}: {record.name} - {record.source_label}")
    return "\n".join(lines)


async def main() -> None:
    """Ensure DB exists and print all stored collections."""
    dal = CollectionDAL(AsyncDatabaseInitializer())
    text = format_collections(await dal.load_user_collections(), await dal.load_submissions())
    print(text or "No stored images.")


if __name__ == "__main__":
    asyncio.run(main())
