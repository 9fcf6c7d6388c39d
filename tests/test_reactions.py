# tests/test_reactions.py
"""Tests for the reaction toggle service and counter maintenance."""

import pytest

from forum.errors import NotFoundError, ValidationError
from forum.models import Post, PostFavorite, PostLike, Question, QuestionLike, User
from forum.responses import Page
from forum.services import reactions
from forum.services.accounts import delete_user
from forum.services.reactions import (
    POST_FAVORITES,
    POST_LIKES,
    QUESTION_LIKES,
    delete_reaction,
    list_reacted_contents,
    reconcile_counters,
    save_reaction,
    toggle_reaction,
    update_reaction,
)


def _likes(db, post_id):
    db.expire_all()
    return db.get(Post, post_id).likes_count


class TestToggle:
    """Counter and join table move together."""

    def test_like_unlike_sequence(self, db, make):
        """Two users like a post, the first one takes it back."""
        author, u1, u2 = make.user(), make.user(), make.user()
        post = make.post(author)

        first = toggle_reaction(db, POST_LIKES, post.id, u1.id)
        assert (first.state, first.active, first.count) == ("liked", True, 1)

        second = toggle_reaction(db, POST_LIKES, post.id, u2.id)
        assert second.count == 2

        third = toggle_reaction(db, POST_LIKES, post.id, u1.id)
        assert (third.state, third.active, third.count) == ("unliked", False, 1)

        db.commit()
        assert _likes(db, post.id) == 1
        assert db.query(PostLike).filter(PostLike.post_id == post.id).count() == 1

    def test_alternates_by_parity(self, db, make):
        author, fan = make.user(), make.user()
        question = make.question(author)

        for _ in range(5):
            result = toggle_reaction(db, QUESTION_LIKES, question.id, fan.id)

        assert result.active is True
        assert result.count == 1
        assert db.query(QuestionLike).count() == 1

    def test_likes_and_favorites_are_independent(self, db, make):
        author, fan = make.user(), make.user()
        post = make.post(author)

        toggle_reaction(db, POST_LIKES, post.id, fan.id)
        result = toggle_reaction(db, POST_FAVORITES, post.id, fan.id)
        db.commit()

        assert result.state == "favorited"
        row = db.get(Post, post.id)
        assert (row.likes_count, row.favorite_count) == (1, 1)

    def test_missing_content(self, db, make):
        user = make.user()

        with pytest.raises(NotFoundError):
            toggle_reaction(db, POST_LIKES, 999, user.id)
        with pytest.raises(NotFoundError):
            toggle_reaction(db, POST_LIKES, None, user.id)
        assert db.query(PostLike).count() == 0

    def test_counter_never_negative(self, db, make):
        """A drifted zero counter stays at zero when the join row is removed."""
        author, fan = make.user(), make.user()
        post = make.post(author)
        db.add(PostLike(post_id=post.id, user_id=fan.id))
        db.commit()

        result = toggle_reaction(db, POST_LIKES, post.id, fan.id)

        assert result.active is False
        assert result.count == 0

    def test_duplicate_insert_is_a_no_op(self, db, make, monkeypatch):
        """A pair inserted by a concurrent request trips the unique constraint; the counter stays put."""
        author, fan = make.user(), make.user()
        post = make.post(author, likes_count=1)
        db.add(PostLike(post_id=post.id, user_id=fan.id))
        db.commit()
        # The other request commits its row after this one looked for the pair.
        monkeypatch.setattr(reactions, "_find_reaction", lambda *args: None)

        result = toggle_reaction(db, POST_LIKES, post.id, fan.id)
        db.commit()

        assert (result.changed, result.active, result.count) == (False, True, 1)
        assert _likes(db, post.id) == 1
        assert db.query(PostLike).count() == 1

    def test_duplicate_insert_keeps_earlier_writes(self, db, make, monkeypatch):
        """Only the failed insert is undone, not the rest of the transaction."""
        author, fan = make.user(), make.user()
        post = make.post(author, likes_count=1)
        db.add(PostLike(post_id=post.id, user_id=fan.id))
        db.commit()

        toggle_reaction(db, POST_FAVORITES, post.id, fan.id)
        monkeypatch.setattr(reactions, "_find_reaction", lambda *args: None)
        toggle_reaction(db, POST_LIKES, post.id, fan.id)
        db.commit()

        db.expire_all()
        assert db.get(Post, post.id).favorite_count == 1
        assert db.query(PostFavorite).count() == 1
        assert _likes(db, post.id) == 1


class TestListReacted:
    """The user's liked and favorited content."""

    def test_reply_carries_parent_and_classification(self, db, make):
        author, fan = make.user(), make.user()
        school = make.school()
        root = make.post(author, "Root", school_id=school.id)
        reply = make.post(author, "Reply", parent=root, school_id=school.id)
        toggle_reaction(db, POST_LIKES, reply.id, fan.id)
        toggle_reaction(db, POST_LIKES, root.id, fan.id)
        db.commit()

        rows, total = list_reacted_contents(db, POST_LIKES, fan.id, Page(1, 10))

        assert total == 2
        assert [row["id"] for row in rows] == [reply.id, root.id]
        assert rows[0]["parent"]["id"] == root.id
        assert "content" not in rows[0]
        assert "content" not in rows[0]["parent"]
        assert rows[0]["school"]["id"] == school.id
        assert rows[1]["parent"] is None

    def test_only_the_callers_reactions(self, db, make):
        author, fan, other = make.user(), make.user(), make.user()
        post = make.post(author)
        toggle_reaction(db, POST_FAVORITES, post.id, other.id)
        db.commit()

        rows, total = list_reacted_contents(db, POST_FAVORITES, fan.id, Page(1, 10))

        assert (rows, total) == ([], 0)


class TestAdminReactions:
    """Administrative join-row corrections keep counters in step."""

    def test_save_is_find_or_create(self, db, make):
        author, fan = make.user(), make.user()
        post = make.post(author)

        reaction, created = save_reaction(db, POST_LIKES, post.id, fan.id)
        again, created_again = save_reaction(db, POST_LIKES, post.id, fan.id)
        db.commit()

        assert created is True
        assert created_again is False
        assert again.id == reaction.id
        assert _likes(db, post.id) == 1

    def test_save_validates_references(self, db, make):
        with pytest.raises(ValidationError) as excinfo:
            save_reaction(db, POST_LIKES, 10, None)

        assert len(excinfo.value.errors) == 2

    def test_update_moves_the_count(self, db, make):
        author, fan = make.user(), make.user()
        first, second = make.post(author), make.post(author)
        reaction, _ = save_reaction(db, POST_LIKES, first.id, fan.id)

        update_reaction(db, POST_LIKES, reaction.id, second.id, None)
        db.commit()

        assert _likes(db, first.id) == 0
        assert _likes(db, second.id) == 1

    def test_update_rejects_existing_pair(self, db, make):
        author, fan = make.user(), make.user()
        first, second = make.post(author), make.post(author)
        reaction, _ = save_reaction(db, POST_LIKES, first.id, fan.id)
        save_reaction(db, POST_LIKES, second.id, fan.id)

        with pytest.raises(ValidationError):
            update_reaction(db, POST_LIKES, reaction.id, second.id, fan.id)

    def test_delete_decrements(self, db, make):
        author, fan = make.user(), make.user()
        post = make.post(author)
        reaction, _ = save_reaction(db, POST_LIKES, post.id, fan.id)

        delete_reaction(db, POST_LIKES, reaction.id)
        db.commit()

        assert _likes(db, post.id) == 0
        with pytest.raises(NotFoundError):
            delete_reaction(db, POST_LIKES, reaction.id)


class TestCounterMaintenance:
    """Drift repair and user removal."""

    def test_reconcile_repairs_drift(self, db, make):
        author, fan = make.user(), make.user()
        post = make.post(author, likes_count=7)
        untouched = make.post(author)
        db.add(PostLike(post_id=post.id, user_id=fan.id))
        db.commit()

        repaired = reconcile_counters(db, POST_LIKES)
        db.commit()

        assert repaired == [{"id": post.id, "stored": 7, "actual": 1}]
        assert _likes(db, post.id) == 1
        assert _likes(db, untouched.id) == 0

    def test_deleting_a_user_releases_their_reactions(self, db, make):
        author, fan = make.user(), make.user()
        post = make.post(author)
        question = make.question(author)
        toggle_reaction(db, POST_LIKES, post.id, fan.id)
        toggle_reaction(db, POST_FAVORITES, post.id, fan.id)
        toggle_reaction(db, QUESTION_LIKES, question.id, fan.id)
        db.commit()

        delete_user(db, fan.id)
        db.commit()
        db.expire_all()

        row = db.get(Post, post.id)
        assert (row.likes_count, row.favorite_count) == (0, 0)
        assert db.get(Question, question.id).likes_count == 0
        assert db.query(PostLike).count() == 0
        assert db.query(PostFavorite).count() == 0
        assert db.get(User, fan.id) is None
