import pytest
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from sqlalchemy import delete, func, select

from forum_topics.core.poll_reconciler import PollStore
from forum_topics.core.revision_engine import TopicRevisionEngine, build_move_annotation
from forum_topics.exceptions import InvariantViolationError, PrecheckFailedError, TopicNotFoundError, UserInputError
from forum_topics.models import (
    Base,
    EditInfoORM,
    GroupORM,
    PollORM,
    TagValueORM,
    TopicIdSequenceORM,
    TopicORM,
    UserEventORM,
    UserORM,
)
from forum_topics.models.dtos import AddTopicRequest, PollVariantDTO
from forum_topics.tests.stubs.forum_data import (
    AUTHOR,
    BASE_TIME,
    DESKTOP_GROUP,
    GALLERY_GROUP,
    GENERAL_GROUP,
    MODERATOR,
    NEWS_GROUP,
    POLLS_GROUP,
    READER,
    TROLL,
    add_topic,
    group_dto,
    reload,
    user_dto,
)


@dataclass
class PlacedImage:
    main_file: Path
    icon_file: Path


class PreparedImage:
    def move_to(self, directory: Path, name: str) -> PlacedImage:
        return PlacedImage(directory / f"{name}.jpg", directory / f"{name}-icon.jpg")


@pytest.fixture
def engine(forum) -> TopicRevisionEngine:
    return TopicRevisionEngine()


@pytest.fixture
def topic_42(forum):
    add_topic(forum, 42, GENERAL_GROUP, title="A", body="hello")
    forum.commit()
    return 42


def tag_counter(session, tag):
    session.expire_all()
    return session.execute(select(TagValueORM.counter).where(TagValueORM.value == tag)).scalar_one_or_none()


def edit_count(session, topic_id):
    return session.execute(select(func.count()).select_from(EditInfoORM).where(EditInfoORM.topic_id == topic_id)).scalar()


# --- Creation ---

def test_create_topic_persists_metadata_body_and_tags(engine, forum):
    author = user_dto(forum, AUTHOR)
    form = AddTopicRequest(title="Kernel 6.8 released", url="http://kernel.org", link_text="kernel.org", tags="Linux, kernel")

    topic_id = engine.create_topic(author, group_dto(forum, NEWS_GROUP), form, "Changelog follows")

    topic = engine.get_by_id(topic_id)
    assert topic.title == "Kernel 6.8 released"
    assert topic.url == "http://kernel.org"
    assert topic.author_id == AUTHOR
    assert topic.moderated is False
    assert topic.deleted is False
    assert topic.section_id == 1
    assert engine.get_body_text(topic) == "Changelog follows"
    assert engine.get_tags(topic) == ["kernel", "linux"]
    assert tag_counter(forum, "linux") == 1
    assert tag_counter(forum, "kernel") == 1


def test_create_topic_allocates_increasing_ids(engine, forum):
    author = user_dto(forum, AUTHOR)
    group = group_dto(forum, GENERAL_GROUP)

    first = engine.create_topic(author, group, AddTopicRequest(title="one"), "1")
    second = engine.create_topic(author, group, AddTopicRequest(title="two"), "2")

    assert second > first
    assert reload(forum, TopicIdSequenceORM, "topics").value == second


def test_id_counter_is_seeded_past_existing_topics(engine, forum, clean_database):
    add_topic(forum, 42, GENERAL_GROUP)
    forum.commit()
    TopicIdSequenceORM.__table__.drop(clean_database)

    Base.metadata.create_all(clean_database)

    assert engine.allocate_topic_id() == 43


def test_missing_id_counter_is_an_invariant_violation(engine, forum):
    forum.execute(delete(TopicIdSequenceORM))
    forum.commit()

    with pytest.raises(InvariantViolationError):
        engine.allocate_topic_id()


def test_create_topic_with_poll_and_user_refs(engine, forum):
    author = user_dto(forum, AUTHOR)
    reader = user_dto(forum, READER)
    troll = user_dto(forum, TROLL)
    form = AddTopicRequest(title="Favourite distro?", poll=["Debian", "", "Fedora"], multiselect=True)

    topic_id = engine.create_topic(author, group_dto(forum, POLLS_GROUP), form, "vote", user_refs=[reader, troll, reader])

    poll = PollStore().get_poll_by_topic_id(forum, topic_id)
    assert poll.multiselect is True
    assert [v.label for v in poll.variants] == ["Debian", "Fedora"]
    events = forum.execute(select(UserEventORM.user_id).where(UserEventORM.topic_id == topic_id)).scalars().all()
    assert sorted(events) == [READER, TROLL]


def test_create_topic_ignores_poll_outside_poll_groups(engine, forum):
    form = AddTopicRequest(title="Not a poll", poll=["a", "b"])

    topic_id = engine.create_topic(user_dto(forum, AUTHOR), group_dto(forum, GENERAL_GROUP), form, "text")

    assert forum.execute(select(PollORM).where(PollORM.topic_id == topic_id)).scalar_one_or_none() is None


def test_create_topic_in_image_group_places_image(engine, forum, mocker, tmp_path):
    mocker.patch('forum_topics.config.settings.settings.HTML_PATH_PREFIX', str(tmp_path))

    topic_id = engine.create_topic(
        user_dto(forum, AUTHOR),
        group_dto(forum, GALLERY_GROUP),
        AddTopicRequest(title="My desktop", url="ignored", link_text="ignored"),
        "screenshot",
        image=PreparedImage(),
    )

    topic = engine.get_by_id(topic_id)
    assert topic.url == f"gallery/{topic_id}.jpg"
    assert topic.link_text == f"gallery/{topic_id}-icon.jpg"


def test_create_topic_in_image_group_without_image_creates_nothing(engine, forum):
    with pytest.raises(PrecheckFailedError):
        engine.create_topic(user_dto(forum, AUTHOR), group_dto(forum, GALLERY_GROUP), AddTopicRequest(title="x"), "x")

    assert forum.execute(select(func.count()).select_from(TopicORM)).scalar() == 0


# --- Edits ---

def test_title_edit_records_single_audit_entry(engine, forum, topic_42):
    old = engine.get_by_id(topic_42)
    new = old.model_copy(update={"title": "B"})

    modified = engine.update_and_commit(new, old, user_dto(forum, AUTHOR), None, "hello")

    assert modified is True
    entries = engine.get_edit_info(topic_42)
    assert len(entries) == 1
    assert entries[0].old_title == "A"
    assert entries[0].old_message is None
    assert entries[0].editor_id == AUTHOR
    assert engine.get_by_id(topic_42).title == "B"


def test_identical_edit_is_not_modified_and_not_audited(engine, forum, topic_42):
    old = engine.get_by_id(topic_42)

    modified = engine.update_and_commit(old.model_copy(), old, user_dto(forum, AUTHOR), [], "hello")

    assert modified is False
    assert engine.get_edit_info(topic_42) == []


def test_none_and_empty_link_fields_compare_equal(engine, forum, topic_42):
    old = engine.get_by_id(topic_42)
    new = old.model_copy(update={"url": "", "link_text": ""})

    assert engine.update_and_commit(new, old, user_dto(forum, AUTHOR), None, "hello") is False


def test_body_and_link_edit_share_one_entry(engine, forum, topic_42):
    old = engine.get_by_id(topic_42)
    new = old.model_copy(update={"url": "http://example.org", "link_text": "Example"})

    engine.update_and_commit(new, old, user_dto(forum, AUTHOR), None, "hello, world")

    entries = engine.get_edit_info(topic_42)
    assert len(entries) == 1
    assert entries[0].old_message == "hello"
    assert entries[0].old_url is None
    assert entries[0].old_link_text is None
    assert entries[0].old_title is None
    assert engine.get_body_text(old) == "hello, world"
    assert engine.get_by_id(topic_42).url == "http://example.org"


def test_edit_info_is_most_recent_first(engine, forum, topic_42):
    author = user_dto(forum, AUTHOR)
    first = engine.get_by_id(topic_42)
    engine.update_and_commit(first.model_copy(update={"title": "B"}), first, author, None, "hello")
    second = engine.get_by_id(topic_42)
    engine.update_and_commit(second.model_copy(update={"title": "C"}), second, author, None, "hello")

    assert [e.old_title for e in engine.get_edit_info(topic_42)] == ["B", "A"]


def test_edit_from_stale_snapshot_is_diffed_against_live_row(engine, forum, topic_42):
    author = user_dto(forum, AUTHOR)
    stale = engine.get_by_id(topic_42)
    engine.update_and_commit(stale.model_copy(update={"title": "B"}), stale, author, None, "hello")

    engine.update_and_commit(stale.model_copy(update={"title": "C"}), stale, author, None, "hello")

    assert [e.old_title for e in engine.get_edit_info(topic_42)] == ["B", "A"]
    assert engine.get_by_id(topic_42).title == "C"


def test_minor_flag_change_is_modified_without_audit_entry(engine, forum, topic_42):
    old = engine.get_by_id(topic_42)

    modified = engine.update_and_commit(old.model_copy(update={"minor": True}), old, user_dto(forum, AUTHOR), None, "hello")

    assert modified is True
    assert engine.get_by_id(topic_42).minor is True
    assert engine.get_edit_info(topic_42) == []


def test_tag_edit_updates_counters_and_audit(engine, forum):
    author = user_dto(forum, AUTHOR)
    topic_id = engine.create_topic(author, group_dto(forum, GENERAL_GROUP), AddTopicRequest(title="t", tags="linux,kernel"), "b")
    old = engine.get_by_id(topic_id)

    modified = engine.update_and_commit(old, old, author, ["linux", "debian"], "b")

    assert modified is True
    assert engine.get_tags(old) == ["debian", "linux"]
    assert tag_counter(forum, "linux") == 1
    assert tag_counter(forum, "kernel") == 0
    assert tag_counter(forum, "debian") == 1
    assert engine.get_edit_info(topic_id)[0].old_tags == "kernel,linux"


# --- Commit & relocation ---

def test_commit_with_group_move_bumps_both_counters(engine, forum, topic_42):
    forum.get(GroupORM, GENERAL_GROUP).moved_topics = 5
    forum.get(GroupORM, DESKTOP_GROUP).moved_topics = 2
    forum.commit()
    old = engine.get_by_id(topic_42)

    modified = engine.update_and_commit(
        old, old, user_dto(forum, MODERATOR), None, "hello", commit=True, change_group_id=DESKTOP_GROUP, bonus=5
    )

    assert modified is True
    assert reload(forum, GroupORM, GENERAL_GROUP).moved_topics == 6
    assert reload(forum, GroupORM, DESKTOP_GROUP).moved_topics == 3
    topic = engine.get_by_id(topic_42)
    assert topic.group_id == DESKTOP_GROUP
    assert topic.moderated is True
    assert topic.commit_by_id == MODERATOR
    assert topic.commit_at is not None
    assert reload(forum, UserORM, AUTHOR).score == 55


def test_commit_from_stale_snapshot_relocates_from_live_group(engine, forum, topic_42):
    moderator = user_dto(forum, MODERATOR)
    stale = engine.get_by_id(topic_42)
    engine.update_and_commit(stale, stale, moderator, None, "hello", commit=True, change_group_id=DESKTOP_GROUP)

    engine.update_and_commit(stale, stale, moderator, None, "hello", commit=True, change_group_id=NEWS_GROUP)

    assert reload(forum, GroupORM, GENERAL_GROUP).moved_topics == 1
    assert reload(forum, GroupORM, DESKTOP_GROUP).moved_topics == 2
    assert reload(forum, GroupORM, NEWS_GROUP).moved_topics == 1
    assert engine.get_by_id(topic_42).group_id == NEWS_GROUP


def test_commit_into_same_group_leaves_counters(engine, forum, topic_42):
    old = engine.get_by_id(topic_42)

    engine.update_and_commit(old, old, user_dto(forum, MODERATOR), None, "hello", commit=True, change_group_id=GENERAL_GROUP)

    assert reload(forum, GroupORM, GENERAL_GROUP).moved_topics == 0
    assert engine.get_by_id(topic_42).moderated is True


def test_commit_with_invalid_bonus_changes_nothing(engine, forum, topic_42):
    old = engine.get_by_id(topic_42)
    new = old.model_copy(update={"title": "B"})

    with pytest.raises(UserInputError):
        engine.update_and_commit(new, old, user_dto(forum, MODERATOR), None, "hello", commit=True, bonus=21)

    assert engine.get_by_id(topic_42) == old
    assert edit_count(forum, topic_42) == 0
    assert reload(forum, UserORM, AUTHOR).score == 50


def test_poll_variants_for_topic_without_poll_rolls_back_edit(engine, forum, topic_42):
    old = engine.get_by_id(topic_42)
    new = old.model_copy(update={"title": "B"})

    with pytest.raises(InvariantViolationError):
        engine.update_and_commit(
            new, old, user_dto(forum, AUTHOR), None, "hello", poll_variants=[PollVariantDTO(id=0, label="x")]
        )

    assert engine.get_by_id(topic_42).title == "A"
    assert edit_count(forum, topic_42) == 0


# --- Polls ---

@pytest.fixture
def poll_topic(engine, forum):
    form = AddTopicRequest(title="Favourite distro?", poll=["Debian", "Fedora", "Arch"])
    return engine.create_topic(user_dto(forum, AUTHOR), group_dto(forum, POLLS_GROUP), form, "vote")


def test_reconciling_poll_with_itself_is_noop(engine, forum, poll_topic):
    before = PollStore().get_poll_by_topic_id(forum, poll_topic)
    forum.rollback()
    old = engine.get_by_id(poll_topic)

    modified = engine.update_and_commit(old, old, user_dto(forum, AUTHOR), None, "vote",
                                        poll_variants=before.variants, multiselect=before.multiselect)

    forum.expire_all()
    after = PollStore().get_poll_by_topic_id(forum, poll_topic)
    assert modified is False
    assert [v.id for v in after.variants] == [v.id for v in before.variants]


def test_poll_edit_removes_relabels_and_appends(engine, forum, poll_topic):
    before = PollStore().get_poll_by_topic_id(forum, poll_topic)
    forum.rollback()
    debian, fedora, arch = before.variants
    old = engine.get_by_id(poll_topic)
    submitted = [
        PollVariantDTO(id=debian.id, label="Debian GNU/Linux"),
        PollVariantDTO(id=fedora.id, label=""),
        PollVariantDTO(id=arch.id, label="Arch"),
        PollVariantDTO(id=0, label="Gentoo"),
    ]

    modified = engine.update_and_commit(old, old, user_dto(forum, AUTHOR), None, "vote",
                                        poll_variants=submitted, multiselect=True)

    forum.expire_all()
    after = PollStore().get_poll_by_topic_id(forum, poll_topic)
    assert modified is True
    assert after.multiselect is True
    assert [v.label for v in after.variants] == ["Debian GNU/Linux", "Arch", "Gentoo"]
    assert after.variants[0].id == debian.id
    assert after.variants[1].id == arch.id
    assert engine.get_edit_info(poll_topic) == []


# --- Moves ---

def test_move_to_linkless_unmoderated_group_rewrites_body_and_strips_tags(engine, forum):
    author = user_dto(forum, AUTHOR)
    form = AddTopicRequest(title="News", url="http://example.org", link_text="Example", tags="linux")
    topic_id = engine.create_topic(author, group_dto(forum, NEWS_GROUP), form, "hello")
    topic = engine.get_by_id(topic_id)

    engine.move_topic(topic, group_dto(forum, GENERAL_GROUP), user_dto(forum, MODERATOR))

    moved = engine.get_by_id(topic_id)
    assert moved.group_id == GENERAL_GROUP
    assert moved.url is None
    assert moved.link_text is None
    expected = "hello" + build_move_annotation(True, "http://example.org", "Example", "moder", "Linux News")
    assert engine.get_body_text(moved) == expected
    assert engine.get_tags(moved) == []
    assert tag_counter(forum, "linux") == 0
    assert reload(forum, GroupORM, GENERAL_GROUP).moved_topics == 0


def test_move_html_topic_uses_html_annotation(engine, forum):
    add_topic(forum, 77, GENERAL_GROUP, title="Old", body="<p>legacy</p>", bbcode=False)
    forum.commit()
    topic = engine.get_by_id(77)

    engine.move_topic(topic, group_dto(forum, DESKTOP_GROUP), user_dto(forum, MODERATOR))

    assert engine.get_body_text(topic) == "<p>legacy</p>\n<br><i>Moved by moder from General</i>\n"


def test_move_to_group_with_links_keeps_body_link_and_tags(engine, forum):
    author = user_dto(forum, AUTHOR)
    form = AddTopicRequest(title="News", url="http://example.org", link_text="Example", tags="linux")
    topic_id = engine.create_topic(author, group_dto(forum, GENERAL_GROUP), form, "hello")

    engine.move_topic(engine.get_by_id(topic_id), group_dto(forum, NEWS_GROUP), user_dto(forum, MODERATOR))

    moved = engine.get_by_id(topic_id)
    assert moved.group_id == NEWS_GROUP
    assert moved.url == "http://example.org"
    assert engine.get_body_text(moved) == "hello"
    assert engine.get_tags(moved) == ["linux"]


# --- Options & reads ---

def test_resolve_topic_bumps_last_modified_by_one_second(engine, forum, topic_42):
    engine.resolve_topic(topic_42, True)

    topic = engine.get_by_id(topic_42)
    assert topic.resolved is True
    assert topic.last_modified_at.replace(tzinfo=None) == (BASE_TIME + timedelta(seconds=1)).replace(tzinfo=None)


def test_set_topic_options(engine, forum, topic_42):
    engine.set_topic_options(engine.get_by_id(topic_42), post_score=50, sticky=True, not_on_top=True, minor=True)

    topic = engine.get_by_id(topic_42)
    assert (topic.post_score, topic.sticky, topic.not_on_top, topic.minor) == (50, True, True, True)
    assert topic.last_modified_at.replace(tzinfo=None) > BASE_TIME.replace(tzinfo=None)


def test_topics_for_month_and_first_topic_time(engine, forum):
    add_topic(forum, 1, GENERAL_GROUP, created_at=datetime(1970, 1, 1, tzinfo=timezone.utc))
    add_topic(forum, 2, GENERAL_GROUP, created_at=datetime(2024, 2, 29, 23, 0, tzinfo=timezone.utc))
    add_topic(forum, 3, GENERAL_GROUP, created_at=datetime(2024, 3, 1, 0, 0, tzinfo=timezone.utc))
    add_topic(forum, 4, GENERAL_GROUP, created_at=datetime(2024, 3, 31, 23, 59, tzinfo=timezone.utc))
    add_topic(forum, 5, GENERAL_GROUP, created_at=datetime(2024, 4, 1, 0, 0, tzinfo=timezone.utc))
    forum.commit()

    assert engine.get_topics_for_month(2024, 3) == [3, 4]
    assert engine.get_topics_for_month(2024, 2) == [2]
    first = engine.get_time_first_topic()
    assert first.replace(tzinfo=None) == datetime(2024, 2, 29, 23, 0)


def test_get_by_id_unknown_topic(engine):
    with pytest.raises(TopicNotFoundError):
        engine.get_by_id(999)


def test_get_group(engine, forum, topic_42):
    group = engine.get_group(engine.get_by_id(topic_42))

    assert group.id == GENERAL_GROUP
    assert group.title == "General"
    assert group.moderated is False
