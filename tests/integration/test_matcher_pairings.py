import pytest

from nested_mutations.mutations.field_map import FieldMap
from nested_mutations.mutations.matcher import Matcher
from nested_mutations.mutations.results import MatchAction
from nested_mutations.mutations.store import RecordStore
from tests.models import Author, Post, Profile

pytestmark = [pytest.mark.integration, pytest.mark.django_db]


@pytest.fixture
def store():
    return RecordStore()


@pytest.fixture
def matcher(store):
    return Matcher(store)


def _posts_map(**options):
    field_map = FieldMap(Author)
    posts = field_map.has_many("posts", **options)
    posts.input("id").input("subject").input("body")
    field_map.freeze()
    return posts


def test_first_match_wins_on_duplicate_keys(matcher, store):
    """The first fragment carrying a key should claim the matching child."""
    author = Author.objects.create(first_name="Ada")
    first = Post.objects.create(author=author, subject="Same")
    second = Post.objects.create(author=author, subject="Same")
    posts = _posts_map(match_keys="subject")
    fragments = [{"subject": "Same", "body": "x"}, {"subject": "Same", "body": "y"}]

    results = matcher.match(author, posts, fragments)

    assert [(r.action, r.locator) for r in results] == [
        (MatchAction.UPDATE, 0),
        (MatchAction.DESTROY, None),
        (MatchAction.CREATE, 1),
    ]
    assert results[0].record == first
    assert results[1].record == second
    assert store.is_marked_for_destruction(results[1].record)
    assert results[2].record.pk is None
    assert results[2].record.author is author


def test_fragments_without_key_values_are_never_collapsed(matcher):
    """Fragments without key values should each build a new child."""
    author = Author.objects.create(first_name="Ada")
    posts = _posts_map(match_keys="id")

    results = matcher.match(author, posts, [{"subject": "One"}, {"subject": "Two"}])

    assert [(r.action, r.locator) for r in results] == [
        (MatchAction.CREATE, 0),
        (MatchAction.CREATE, 1),
    ]
    assert results[0].record is not results[1].record


def test_positional_matching_pads_both_sides(matcher, store):
    """Positional matching should destroy extra children and create extra fragments."""
    author = Author.objects.create(first_name="Ada")
    Post.objects.create(author=author, subject="A")
    Post.objects.create(author=author, subject="B")
    posts = _posts_map()

    shorter = matcher.match(author, posts, [{"subject": "A2"}])
    assert [(r.action, r.locator) for r in shorter] == [
        (MatchAction.UPDATE, 0),
        (MatchAction.DESTROY, 1),
    ]

    other = Author.objects.create(first_name="Grace")
    longer = Matcher(RecordStore()).match(other, posts, [{"subject": "X"}, {"subject": "Y"}])
    assert [(r.action, r.locator) for r in longer] == [
        (MatchAction.CREATE, 0),
        (MatchAction.CREATE, 1),
    ]


def test_one_to_one_slots(matcher):
    """A one-to-one slot should create, update or destroy its single child."""
    author = Author.objects.create(first_name="Ada")
    profile_map = FieldMap(Author).has_one("profile")
    profile_map.input("bio")

    assert matcher.match(author, profile_map, None) == []

    created = matcher.match(author, profile_map, {"bio": "Hi"})
    assert [r.action for r in created] == [MatchAction.CREATE]
    assert isinstance(created[0].record, Profile)

    Profile.objects.create(author=author, bio="Existing")
    fresh = Author.objects.get(pk=author.pk)
    store = RecordStore()
    assert [r.action for r in Matcher(store).match(fresh, profile_map, {"bio": "New"})] == [MatchAction.UPDATE]
    destroyed = Matcher(store).match(fresh, profile_map, None)
    assert [r.action for r in destroyed] == [MatchAction.DESTROY]
    assert store.is_marked_for_destruction(destroyed[0].record)


def test_relink_by_identifier(matcher):
    """A foreign record named by identifier should be re-linked to the parent."""
    author = Author.objects.create(first_name="Ada")
    other = Author.objects.create(first_name="Grace")
    stray = Post.objects.create(author=other, subject="Stray")
    posts = _posts_map(match_keys="id", identifier_field="id")

    results = matcher.match(author, posts, [{"id": str(stray.pk)}])

    assert [(r.action, r.locator) for r in results] == [(MatchAction.RELINK, 0)]
    assert results[0].record.author is author


def test_pairings_replays_memo_or_matches_without_side_effects(matcher, store):
    """pairings should replay applied matches or match without marking records."""
    author = Author.objects.create(first_name="Ada")
    post = Post.objects.create(author=author, subject="A")
    posts = _posts_map(match_keys="id")

    dry = matcher.pairings(author, posts, [])
    assert [r.action for r in dry] == [MatchAction.DESTROY]
    assert not store.is_marked_for_destruction(dry[0].record)

    applied = matcher.match(author, posts, [{"id": post.pk, "subject": "B"}, {"subject": "C"}])
    assert matcher.pairings(author, posts, []) is applied


def test_identifier_keeps_a_child_its_key_no_longer_matches(matcher, store):
    """A child named by identifier should be updated in place even when its key changes."""
    author = Author.objects.create(first_name="Ada")
    post = Post.objects.create(author=author, subject="Old")
    posts = _posts_map(match_keys="subject", identifier_field=True)

    results = matcher.match(author, posts, [{"id": str(post.pk), "subject": "New"}])

    assert [(r.action, r.locator) for r in results] == [(MatchAction.UPDATE, 0)]
    assert results[0].record is store.children(author, posts)[0]
    assert results[0].record.pk == post.pk
    assert not store.is_marked_for_destruction(results[0].record)
