"""Tests for the notice and run repositories."""

from datetime import datetime, timedelta

from sqlalchemy import String

from conftest import seed_notice
from licitawatch.core.config.models import LabelsConfig
from licitawatch.core.extract import DetailExtractor, NoticeDetail
from licitawatch.persistence.models import Notice, RunStatus, RunType, ScrapeStatus
from licitawatch.persistence.repo import NoticeFilter, NoticeRepository, RunRepository


BASE = datetime(2024, 3, 1, 12, 0)


def test_insert_or_ignore(scope):
    with scope() as session:
        repo = NoticeRepository(session)
        assert repo.insert_or_ignore("A", BASE, title="Primero") is True
        assert repo.insert_or_ignore("A", BASE, title="Segundo") is False

    with scope() as session:
        repo = NoticeRepository(session)
        assert repo.count_notices() == 1
        assert repo.get_by_identifier("A").title == "Primero"


def test_pending_newest_first_with_limit(scope):
    for day in range(5):
        seed_notice(scope, f"N{day}", BASE + timedelta(days=day))
    seed_notice(scope, "done", BASE + timedelta(days=10), scrape_status=ScrapeStatus.SCRAPED)

    with scope() as session:
        pending = NoticeRepository(session).select_pending(3)
        assert [n.identifier for n in pending] == ["N4", "N3", "N2"]


def test_pending_respects_attempt_ceiling(scope):
    seed_notice(scope, "fresh", BASE)
    seed_notice(scope, "tired", BASE + timedelta(days=1), scrape_attempts=5)

    with scope() as session:
        repo = NoticeRepository(session)
        assert [n.identifier for n in repo.select_pending(10, max_attempts=5)] == ["fresh"]
        assert len(repo.select_pending(10)) == 2
        assert repo.count_pending(5) == 1


def test_mark_scraped_writes_everything_once(scope):
    notice_id = seed_notice(scope, "A", BASE)

    with scope() as session:
        repo = NoticeRepository(session)
        assert repo.mark_scraped(notice_id, {"organization": "ASSE", "total_amount": 10.5}, "Salud", BASE) is True
        assert repo.mark_scraped(notice_id, {"organization": "Otro"}, "Other", BASE) is False

    with scope() as session:
        notice = NoticeRepository(session).get_by_id(notice_id)
        assert notice.scrape_status == ScrapeStatus.SCRAPED
        assert notice.organization == "ASSE"
        assert notice.total_amount == 10.5
        assert notice.category == "Salud"
        assert notice.classified is True
        assert notice.scrape_attempts == 1


def test_mark_failed_keeps_notice_pending(scope):
    notice_id = seed_notice(scope, "A", BASE)

    with scope() as session:
        NoticeRepository(session).mark_failed(notice_id, "Unexpected status 500", BASE)

    with scope() as session:
        notice = NoticeRepository(session).get_by_id(notice_id)
        assert notice.scrape_status == ScrapeStatus.NOT_SCRAPED
        assert notice.last_scrape_error == "Unexpected status 500"
        assert notice.scrape_attempts == 1
        assert notice.category is None


def test_filters(scope):
    seed_notice(scope, "A", BASE, title="Compra de cartuchos", category="Informática", organization="ANEP")
    seed_notice(scope, "B", BASE + timedelta(days=2), title="Limpieza", category="Limpieza", organization="ASSE",
                notice_type="Compra Directa")
    seed_notice(scope, "C", BASE + timedelta(days=4), title="Obra", category="Construcción", organization="ANEP")

    with scope() as session:
        repo = NoticeRepository(session)

        def ids(filters):
            return [n.identifier for n in repo.list_notices(filters)]

        assert ids(NoticeFilter(category="Limpieza")) == ["B"]
        assert ids(NoticeFilter(organization="anep")) == ["C", "A"]
        assert ids(NoticeFilter(notice_type="directa")) == ["B"]
        assert ids(NoticeFilter(published_from=BASE + timedelta(days=1))) == ["C", "B"]
        assert ids(NoticeFilter(published_to=BASE + timedelta(days=2))) == ["B", "A"]
        assert ids(NoticeFilter(text="cartucho")) == ["A"]
        assert repo.count_notices(NoticeFilter(organization="ANEP")) == 2
        assert [n.identifier for n in repo.list_notices(limit=1, offset=1)] == ["B"]


def test_counts(scope):
    seed_notice(scope, "A", BASE, category="Salud", notice_type="Licitación", scrape_status=ScrapeStatus.SCRAPED)
    seed_notice(scope, "B", BASE, category="Salud", notice_type="Compra Directa", scrape_status=ScrapeStatus.SCRAPED)
    seed_notice(scope, "C", BASE)

    with scope() as session:
        repo = NoticeRepository(session)
        assert repo.count_by_category() == {"Salud": 2}
        assert repo.count_by_type() == {"Licitación": 1, "Compra Directa": 1}
        assert repo.count_by_status() == {ScrapeStatus.SCRAPED: 2, ScrapeStatus.NOT_SCRAPED: 1}


def test_run_lifecycle(scope):
    with scope() as session:
        run_id = RunRepository(session).create(RunType.FEED_SYNC, started_at=BASE).id

    with scope() as session:
        RunRepository(session).complete(run_id, RunStatus.COMPLETED, items_seen=3, items_new=2)

    with scope() as session:
        (run,) = RunRepository(session).get_recent(RunType.FEED_SYNC)
        assert run.status == RunStatus.COMPLETED
        assert (run.items_seen, run.items_new) == (3, 2)
        assert run.finished_at is not None
        assert RunRepository(session).get_recent(RunType.SCRAPE) == []


def test_detail_text_columns_fit_long_extracted_values(scope):
    labels = LabelsConfig(max_value_chars=5000)
    state = "Resolución en trámite " * 40
    detail = DetailExtractor.from_config(labels).extract(f"<html><body><p>Estado: {state}</p></body></html>")
    assert len(detail.resolution_state) > 300

    for name in NoticeDetail.field_names():
        column_type = Notice.__table__.c[name].type
        if isinstance(column_type, String):
            assert column_type.length is None, name

    notice_id = seed_notice(scope, "long", BASE)
    with scope() as session:
        assert NoticeRepository(session).mark_scraped(notice_id, detail.to_dict(), "Other", BASE) is True

    with scope() as session:
        assert NoticeRepository(session).get_by_id(notice_id).resolution_state == detail.resolution_state
