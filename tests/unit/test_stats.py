from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app import models  # noqa: F401
from app.core.time import today_utc
from app.db.base import Base
from app.models.entities import PageView, Post, PostStatus, Role, User
from app.services import stats


@pytest.fixture
def db():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def _home_views(db, days_ago: int, views: int) -> None:
    db.add(PageView(page="home", view_date=today_utc() - timedelta(days=days_ago), views=views))


def test_empty_store_has_no_average_and_no_readers(db):
    result = stats.home_stats(db)
    assert result["total_reviews"] == 0
    assert result["average_rating"] is None
    assert result["active_readers"] == 0
    assert result["top_genres"] == []


def test_average_rating_ignores_unpublished_posts(db):
    editor = User(email="ed@example.com", name="Ed", password_hash="x", role=Role.editor)
    db.add(editor)
    db.flush()
    db.add(
        Post(
            slug="hidden-draft",
            title="Hidden draft",
            book_author="Someone",
            content="text",
            excerpt="text",
            rating=5,
            status=PostStatus.draft,
            author_id=editor.id,
            author_role=Role.editor,
        )
    )
    db.commit()

    result = stats.home_stats(db)
    assert result["total_reviews"] == 0
    assert result["average_rating"] is None


def test_active_readers_prefer_today(db):
    _home_views(db, 0, 12)
    _home_views(db, 1, 40)
    db.commit()
    assert stats.home_stats(db)["active_readers"] == 12


def test_active_readers_fall_back_to_rounded_recent_average(db):
    _home_views(db, 1, 3)
    _home_views(db, 2, 4)
    _home_views(db, 30, 1000)
    db.commit()
    assert stats.home_stats(db)["active_readers"] == 4


def test_page_view_recovers_when_todays_row_appears_concurrently(db, monkeypatch):
    db.add(PageView(page="home", view_date=today_utc(), views=5))
    db.commit()

    lookup = stats._todays_row
    calls = []

    def stale_first_lookup(session, page):
        calls.append(page)
        if len(calls) == 1:
            return None
        return lookup(session, page)

    monkeypatch.setattr(stats, "_todays_row", stale_first_lookup)
    assert stats.record_page_view(db, "home") == 6
    db.commit()
    assert db.query(PageView).filter(PageView.page == "home").one().views == 6
