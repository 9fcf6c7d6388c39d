# tests/test_api.py
"""End-to-end tests of the HTTP surface: envelopes, status codes and access control."""

from forum.models import Post, PostLike, Role


class TestEnvelope:
    """Success and failure bodies."""

    def test_list_posts(self, client, make):
        user = make.user()
        make.post(user, "Hello")

        response = client.get("/posts")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] is True
        assert body["message"]
        assert body["data"]["pagination"] == {"total": 1, "currentPage": 1, "pageSize": 10}
        assert body["data"]["posts"][0]["title"] == "Hello"
        assert "content" not in body["data"]["posts"][0]

    def test_garbage_pagination_falls_back(self, client):
        response = client.get("/questions", params={"currentPage": "abc", "pageSize": "-3"})

        assert response.json()["data"]["pagination"] == {"total": 0, "currentPage": 1, "pageSize": 3}

    def test_huge_page_number_gives_empty_page(self, client, make):
        make.post(make.user())

        response = client.get("/posts", params={"currentPage": "1e20", "pageSize": "1e30"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["posts"] == []
        assert data["pagination"] == {"total": 1, "currentPage": 2**31 - 1, "pageSize": 2**31 - 1}

    def test_zero_id_not_found(self, client):
        response = client.get("/posts/0")

        assert response.status_code == 404
        assert response.json()["errors"] == ["Post ID: 0 not found."]

    def test_not_found(self, client):
        response = client.get("/posts/999")

        assert response.status_code == 404
        body = response.json()
        assert body["status"] is False
        assert body["errors"] == ["Post ID: 999 not found."]

    def test_unknown_route(self, client):
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.json()["status"] is False

    def test_malformed_body(self, client, make, auth):
        user = make.user()

        response = client.post("/posts", json={"title": "T", "content": "C", "type": "lots"}, headers=auth(user))

        assert response.status_code == 400
        assert response.json()["status"] is False
        assert any("type" in message for message in response.json()["errors"])


class TestAuthentication:

    def test_sign_up_then_sign_in(self, client):
        response = client.post("/auth/sign_up", json={
            "email": "ada@example.com", "username": "ada", "nickname": "Ada", "password": "analytical", "sex": 1,
        })
        assert response.status_code == 201
        assert "password" not in response.json()["data"]["user"]

        response = client.post("/auth/sign_in", json={"login": "ada", "password": "analytical"})
        assert response.status_code == 200
        token = response.json()["data"]["token"]

        response = client.get("/likeposts", headers={"token": token})
        assert response.status_code == 200

    def test_sign_up_validation(self, client):
        response = client.post("/auth/sign_up", json={"email": "x"})

        assert response.status_code == 400
        assert len(response.json()["errors"]) > 1

    def test_wrong_password(self, client, make):
        make.user("grace")

        response = client.post("/auth/sign_in", json={"login": "grace", "password": "nope-nope"})

        assert response.status_code == 401

    def test_missing_token(self, client):
        response = client.post("/posts", json={"title": "T", "content": "C"})

        assert response.status_code == 401
        assert response.json()["status"] is False

    def test_bearer_header_accepted(self, client, make, auth):
        user = make.user()
        token = auth(user)["token"]

        response = client.get("/favoriteposts", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200


class TestContentRoutes:

    def test_create_update_delete(self, client, db, make, auth):
        user = make.user()

        response = client.post("/questions", json={"title": "Why?", "content": "Because"}, headers=auth(user))
        assert response.status_code == 201
        question_id = response.json()["data"]["question"]["id"]
        assert response.json()["data"]["question"]["status"] == "published"

        response = client.put(f"/questions/{question_id}", json={"title": "How?"}, headers=auth(user))
        assert response.status_code == 200
        assert response.json()["data"]["question"]["title"] == "How?"

        response = client.delete(f"/questions/{question_id}", headers=auth(user))
        assert response.status_code == 200
        assert client.get(f"/questions/{question_id}").status_code == 404

    def test_create_validation(self, client, make, auth):
        user = make.user()

        response = client.post("/posts", json={"title": "", "school_id": 12}, headers=auth(user))

        assert response.status_code == 400
        assert len(response.json()["errors"]) == 3

    def test_only_owner_or_admin_may_change(self, client, make, auth):
        owner, stranger, admin = make.user(), make.user(), make.user(role=Role.admin)
        post = make.post(owner)

        response = client.put(f"/posts/{post.id}", json={"title": "Mine now"}, headers=auth(stranger))
        assert response.status_code == 401

        response = client.put(f"/posts/{post.id}", json={"is_recommended": True}, headers=auth(admin))
        assert response.status_code == 200
        assert response.json()["data"]["post"]["is_recommended"] is True

    def test_tree(self, client, make):
        user = make.user()
        root = make.post(user)
        make.post(user, parent=root)

        response = client.get(f"/posts/{root.id}")

        data = response.json()["data"]["post"]
        assert len(data["children"]) == 1
        assert "password" not in data["user"]


class TestReactionRoutes:

    def test_toggle(self, client, db, make, auth):
        author, fan = make.user(), make.user()
        post = make.post(author)

        response = client.post("/likeposts", json={"postId": post.id}, headers=auth(fan))
        assert response.status_code == 200
        assert response.json()["data"] == {"active": True, "likes_count": 1, "changed": True}

        response = client.post("/likeposts", json={"postId": post.id}, headers=auth(fan))
        assert response.json()["data"]["active"] is False

        db.expire_all()
        assert db.get(Post, post.id).likes_count == 0
        assert db.query(PostLike).count() == 0

    def test_toggle_unknown(self, client, make, auth):
        fan = make.user()

        response = client.post("/favoritequestions", json={"questionId": 5}, headers=auth(fan))

        assert response.status_code == 404

    def test_list_liked(self, client, make, auth):
        author, fan = make.user(), make.user()
        question = make.question(author)
        client.post("/likequestions", json={"questionId": question.id}, headers=auth(fan))

        response = client.get("/likequestions", headers=auth(fan))

        data = response.json()["data"]
        assert [row["id"] for row in data["questions"]] == [question.id]
        assert data["pagination"]["total"] == 1


class TestLandingAndCategories:

    def test_landing_requires_identity(self, client):
        assert client.get("/").status_code == 401

    def test_landing(self, client, make, auth):
        user = make.user()

        response = client.get("/", headers=auth(user))

        assert set(response.json()["data"]) == {
            "recommendedPosts", "experiencePosts", "analysisPosts", "schoolRelatedPosts",
        }

    def test_categories(self, client, make, auth):
        school = make.school()
        user = make.user(target_school_id=school.id)
        root = make.category("Algorithms", schools=[school])
        make.category("Sorting", parent=root, schools=[school])

        response = client.get("/categories", headers=auth(user))

        categories = response.json()["data"]["categories"]
        assert categories[0]["name"] == "Algorithms"
        assert categories[0]["children"][0]["name"] == "Sorting"

    def test_categories_without_target_school(self, client, make, auth):
        user = make.user()

        assert client.get("/categories", headers=auth(user)).status_code == 404


class TestAdminRoutes:

    def test_non_admin_rejected(self, client, make, auth):
        user = make.user()

        assert client.get("/admin/users", headers=auth(user)).status_code == 401
        assert client.get("/admin/posts", headers=auth(user)).status_code == 401
        assert client.get("/admin/postlikes", headers=auth(user)).status_code == 401

    def test_admin_sign_in(self, client, make):
        make.user("grace")
        make.user("root", role=Role.admin)

        denied = client.post("/admin/auth/sign_in", json={"login": "grace", "password": "secret123"})
        allowed = client.post("/admin/auth/sign_in", json={"login": "root", "password": "secret123"})

        assert denied.status_code == 401
        assert allowed.status_code == 200

    def test_reaction_find_or_create(self, client, db, make, auth):
        admin, fan = make.user(role=Role.admin), make.user()
        post = make.post(admin)

        first = client.post("/admin/postlikes", json={"post_id": post.id, "user_id": fan.id}, headers=auth(admin))
        second = client.post("/admin/postlikes", json={"post_id": post.id, "user_id": fan.id}, headers=auth(admin))

        assert first.status_code == 201
        assert second.status_code == 200
        db.expire_all()
        assert db.get(Post, post.id).likes_count == 1

    def test_catalog(self, client, make, auth):
        admin = make.user(role=Role.admin)
        headers = auth(admin)

        school = client.post("/admin/schools", json={"name": "North", "number": 10001}, headers=headers)
        assert school.status_code == 201
        school_id = school.json()["data"]["school"]["id"]

        category = client.post("/admin/categories", json={"name": "Algorithms"}, headers=headers)
        category_id = category.json()["data"]["category"]["id"]

        link = {"category_id": category_id, "school_id": school_id, "exam_frequency": 4}
        assert client.post("/admin/schoolcategories", json=link, headers=headers).status_code == 201
        assert client.post("/admin/schoolcategories", json=link, headers=headers).status_code == 200

        bad = client.post("/admin/schoolcategories", json={"category_id": 999, "school_id": school_id},
                          headers=headers)
        assert bad.status_code == 400

        assert client.delete(f"/admin/categories/{category_id}", headers=headers).status_code == 200
        assert client.get("/admin/schoolcategories", headers=headers).json()["data"]["schoolCategories"] == []

    def test_user_management(self, client, make, auth):
        admin = make.user(role=Role.admin)
        target = make.user()

        response = client.put(f"/admin/users/{target.id}", json={"role": 2}, headers=auth(admin))
        assert response.status_code == 200
        assert "password" not in response.json()["data"]["user"]

        # Banned users are turned away at the door
        assert client.get("/likeposts", headers=auth(target)).status_code == 401

        assert client.delete(f"/admin/users/{target.id}", headers=auth(admin)).status_code == 200
        assert client.get(f"/admin/users/{target.id}", headers=auth(admin)).status_code == 404
