import pytest

from notepad.auth.session import SessionManager, bound_username, is_bound
from notepad.errors import NotFoundError
from notepad.infra.db import create_tables, make_engine, make_session_factory


@pytest.fixture()
def factory(settings):
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    engine = make_engine(settings.database_url)
    create_tables(engine)
    return make_session_factory(engine)


@pytest.fixture()
def manager(factory):
    return SessionManager(factory, "test-secret", max_age=3600)


def test_ensure_without_cookie_creates_anonymous(manager):
    sess = manager.ensure(None)
    assert sess.is_new
    assert not is_bound(sess)
    assert bound_username(sess) is None
    assert sess.expires_at > sess.created_at


def test_ensure_returns_existing_session_for_signed_token(manager):
    sess = manager.ensure(None)
    again = manager.ensure(manager.sign(sess))
    assert again.token == sess.token
    assert not again.is_new


def test_cookie_carries_signature_not_raw_token(manager):
    sess = manager.ensure(None)
    assert manager.ensure(sess.token).token != sess.token
    assert manager.ensure(manager.sign(sess) + "x").token != sess.token


def test_cookie_signed_with_other_secret_is_ignored(factory, manager):
    other = SessionManager(factory, "other-secret", max_age=3600)
    sess = other.ensure(None)
    assert manager.ensure(other.sign(sess)).token != sess.token


def test_bind_and_destroy(manager):
    sess = manager.ensure(None)
    bound = manager.bind(sess, "a@b.com")
    assert bound.token == sess.token
    assert bound_username(bound) == "a@b.com"
    assert manager.get(sess.token).username == "a@b.com"

    manager.destroy(bound)
    assert manager.get(sess.token) is None
    # idempotent
    manager.destroy(bound)
    manager.destroy(None)
    assert manager.ensure(manager.sign(bound)).token != sess.token


def test_bind_same_user_is_noop(manager):
    bound = manager.bind(manager.ensure(None), "a@b.com")
    assert manager.bind(bound, "a@b.com") is bound


def test_bind_other_user_rotates_token(manager):
    bound = manager.bind(manager.ensure(None), "a@b.com")
    other = manager.bind(bound, "c@d.com")
    assert other.token != bound.token
    assert other.username == "c@d.com"
    assert other.is_new
    assert manager.get(bound.token) is None


def test_bind_destroyed_session_raises_not_found(manager):
    sess = manager.ensure(None)
    manager.destroy(sess)
    with pytest.raises(NotFoundError):
        manager.bind(sess, "a@b.com")


def test_expired_session_is_replaced_and_purged(factory):
    short = SessionManager(factory, "test-secret", max_age=0)
    sess = short.create()
    assert sess.expired()
    assert short.get(sess.token) is None
    assert short.ensure(short.sign(sess)).token != sess.token
    assert short.purge_expired() >= 1


def test_destroy_for_username(manager):
    a1 = manager.bind(manager.ensure(None), "a@b.com")
    a2 = manager.bind(manager.ensure(None), "a@b.com")
    keep = manager.bind(manager.ensure(None), "c@d.com")
    assert manager.destroy_for_username("a@b.com") == 2
    assert manager.get(a1.token) is None
    assert manager.get(a2.token) is None
    assert manager.get(keep.token) is not None


def test_sessions_survive_restart(settings, manager):
    bound = manager.bind(manager.ensure(None), "a@b.com")
    cookie = manager.sign(bound)

    engine = make_engine(settings.database_url)
    restarted = SessionManager(make_session_factory(engine), "test-secret", max_age=3600)
    sess = restarted.ensure(cookie)
    assert sess.token == bound.token
    assert sess.username == "a@b.com"


def test_missing_secret_is_refused(factory):
    with pytest.raises(RuntimeError):
        SessionManager(factory, "", max_age=3600)
