"""Tests for download accounting."""

import threading
import pytest

from lecture_hub import accounting, crud, models
from lecture_hub.errors import InconsistentStateError, NotFoundError


class TestRecordDownload:
    """Test recording downloads and counter increments."""

    def test_record_download(self, test_db, admin_user, make_user, make_lecture):
        lecture = make_lecture(admin_user)
        student = make_user()

        updated = accounting.record_download(test_db, student.id, lecture.id)

        assert updated.download_count == 1
        downloads = crud.get_user_downloads(test_db, student.id)
        assert len(downloads) == 1
        assert downloads[0].lecture_id == lecture.id
        assert downloads[0].downloaded_at is not None

    def test_increments_by_exactly_n(self, test_db, admin_user, make_user, make_lecture):
        lecture = make_lecture(admin_user)
        student = make_user()

        for _ in range(7):
            accounting.record_download(test_db, student.id, lecture.id)

        assert crud.get_lecture_by_id(test_db, lecture.id).download_count == 7
        assert test_db.query(models.Download).count() == 7

    def test_concurrent_downloads_are_not_lost(self, test_db, session_factory, admin_user, make_user, make_lecture):
        """Parallel recorders with their own sessions all land."""
        lecture = make_lecture(admin_user)
        student = make_user()
        lecture_id, student_id = lecture.id, student.id
        threads_count, per_thread = 8, 5
        errors = []

        def worker():
            db = session_factory()
            try:
                for _ in range(per_thread):
                    accounting.record_download(db, student_id, lecture_id)
            except Exception as e:
                errors.append(e)
            finally:
                db.close()

        threads = [threading.Thread(target=worker) for _ in range(threads_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        test_db.expire_all()
        assert crud.get_lecture_by_id(test_db, lecture_id).download_count == threads_count * per_thread
        assert test_db.query(models.Download).count() == threads_count * per_thread

    def test_unknown_lecture(self, test_db, make_user):
        student = make_user()

        with pytest.raises(NotFoundError):
            accounting.record_download(test_db, student.id, "missing-id")

        assert test_db.query(models.Download).count() == 0

    def test_unknown_user(self, test_db, admin_user, make_lecture):
        lecture = make_lecture(admin_user)

        with pytest.raises(NotFoundError):
            accounting.record_download(test_db, "missing-user", lecture.id)

        assert crud.get_lecture_by_id(test_db, lecture.id).download_count == 0

    def test_vanished_lecture_leaves_no_download(self, test_db, make_user, monkeypatch):
        """If the lecture is gone by the time of the insert, nothing is kept."""
        student = make_user()
        monkeypatch.setattr(crud, "get_lecture_by_id", lambda db, lecture_id: object())

        with pytest.raises(InconsistentStateError):
            accounting.record_download(test_db, student.id, "deleted-meanwhile")

        assert test_db.query(models.Download).count() == 0

    def test_download_history_newest_first(self, test_db, admin_user, make_user, make_lecture):
        first = make_lecture(admin_user)
        second = make_lecture(admin_user)
        student = make_user()
        accounting.record_download(test_db, student.id, first.id)
        accounting.record_download(test_db, student.id, second.id)

        history = crud.get_user_downloads(test_db, student.id)
        assert {d.lecture_id for d in history} == {first.id, second.id}
        assert history[0].downloaded_at >= history[1].downloaded_at
