import asyncio

from dal.image_archive_dal import ImageArchive, MARKED_SUFFIX
from models.image_record import ImageRecord, SubmissionCollection, UserCollection
from services.collection_repository import CollectionRepository
from services.purge_scheduler import SECONDS_IN_DAY, PurgeScheduler, inactive_days
from services.slot_store import handle_for_slot

NOW = 1_700_000_000


class FlakyArchive(ImageArchive):
    async def clear(self, handle):
        raise OSError("storage offline")


def _repository(*users):
    repository = CollectionRepository()
    for user_id, days_ago in users:
        repository.put_user(UserCollection(
            user_id=user_id,
            last_seen_at=NOW - days_ago * SECONDS_IN_DAY,
            records=[ImageRecord(1, "Barn", "Wooden Sign"), ImageRecord(2, "Silo", "Wooden Sign")],
        ))
    return repository


def _scheduler(repository, archive, standard_days=3, privileged_days=0, privileged=()):
    return PurgeScheduler(
        repository,
        archive,
        is_privileged=lambda user_id: user_id in privileged,
        standard_days=standard_days,
        privileged_days=privileged_days,
    )


def test_inactive_days_rounds_down():
    collection = UserCollection(user_id="u", last_seen_at=NOW - 3 * SECONDS_IN_DAY + 1)
    assert inactive_days(collection, NOW) == 2
    assert inactive_days(UserCollection(user_id="u", last_seen_at=NOW), NOW) == 0


def test_purge_requires_strictly_more_days_than_limit(tmp_path):
    repository = _repository(("exact", 3), ("over", 4))
    removed = asyncio.run(_scheduler(repository, ImageArchive(tmp_path)).sweep(NOW))
    assert removed == ["over"]
    assert repository.user_ids() == ["exact"]


def test_zero_limit_exempts_the_tier(tmp_path):
    repository = _repository(("vip", 10_000), ("plain", 10_000))
    scheduler = _scheduler(repository, ImageArchive(tmp_path), privileged=("vip",))
    assert asyncio.run(scheduler.sweep(NOW)) == ["plain"]

    everyone_exempt = _scheduler(repository, ImageArchive(tmp_path), standard_days=0)
    assert asyncio.run(everyone_exempt.sweep(NOW)) == []
    assert repository.user_ids() == ["vip"]


def test_sweep_clears_archive_and_marks_folder(tmp_path):
    archive = ImageArchive(tmp_path)
    repository = _repository(("old", 30))
    for slot in (1, 2):
        asyncio.run(archive.write(handle_for_slot("old", slot), {"image_name": "x"}))

    asyncio.run(_scheduler(repository, archive).sweep(NOW))

    assert not archive.path_for(handle_for_slot("old", 1)).exists()
    assert not archive.path_for(handle_for_slot("old", 2)).exists()
    assert (tmp_path / "users" / f"old{MARKED_SUFFIX}").is_dir()


def test_sweep_is_idempotent(tmp_path):
    repository = _repository(("old", 30), ("fresh", 1))
    scheduler = _scheduler(repository, ImageArchive(tmp_path))
    assert asyncio.run(scheduler.sweep(NOW)) == ["old"]
    assert asyncio.run(scheduler.sweep(NOW)) == []
    assert repository.user_ids() == ["fresh"]


def test_failed_clear_still_purges(tmp_path):
    repository = _repository(("old", 30))
    assert asyncio.run(_scheduler(repository, FlakyArchive(tmp_path)).sweep(NOW)) == ["old"]
    assert repository.get_user("old") is None


def test_submissions_survive_purge(tmp_path):
    repository = _repository(("old", 30))
    repository.put_submissions(SubmissionCollection(user_id="old", records=[ImageRecord(1, "Barn", "Sign")]))
    asyncio.run(_scheduler(repository, ImageArchive(tmp_path)).sweep(NOW))
    assert repository.get_submissions("old").records
