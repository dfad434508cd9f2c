"""Tests for the settings pages: classes, areas, canned messages and accounts."""
import pytest

from cleancheck.infrastructure import models

SETTINGS = "/api/admin/settings"


class TestClassesAPI:

    def test_create_and_list(self, client):
        assert client.post(f"{SETTINGS}/classes", json={"name": "701"}).status_code == 200
        assert client.post(f"{SETTINGS}/classes", json={"name": "702"}).status_code == 200

        response = client.get(f"{SETTINGS}/classes")
        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["701", "702"]

    def test_duplicate_name_conflict(self, client, make_class):
        make_class("701")
        response = client.post(f"{SETTINGS}/classes", json={"name": "701"})
        assert response.status_code == 409

    def test_empty_name_rejected(self, client):
        response = client.post(f"{SETTINGS}/classes", json={"name": ""})
        assert response.status_code == 422

    def test_rename(self, client, make_class):
        school_class = make_class("701")
        response = client.patch(f"{SETTINGS}/classes/{school_class.id}", json={"name": "七年一班"})
        assert response.status_code == 200
        assert response.json()["name"] == "七年一班"

    def test_delete_cascades_and_renumbers(self, client, test_db, fake_storage, make_class, make_area, make_report):
        doomed = make_class("701")
        kept = make_class("702")
        first = make_area("A", doomed)
        second = make_area("B", kept)
        make_area("C", doomed)
        third = make_area("D", kept)
        make_report(first, "2024-06-10", "垃圾未清", evidence=["evidence/11111111111"])

        response = client.delete(f"{SETTINGS}/classes/{doomed.id}")

        assert response.status_code == 200
        test_db.expire_all()
        areas = test_db.query(models.Area).order_by(models.Area.rank).all()
        assert [(a.id, a.rank) for a in areas] == [(second.id, 1), (third.id, 2)]
        assert test_db.query(models.Report).count() == 0
        assert fake_storage.removed == ["evidence/11111111111"]

    def test_delete_unknown(self, client):
        assert client.delete(f"{SETTINGS}/classes/5").status_code == 404


class TestAreasAPI:

    def test_create_appends_rank(self, client, make_class):
        school_class = make_class("701")
        first = client.post(f"{SETTINGS}/areas", json={"name": "走廊", "class_id": school_class.id})
        second = client.post(f"{SETTINGS}/areas", json={"name": "樓梯", "class_id": school_class.id})

        assert first.json()["rank"] == 1
        assert second.json()["rank"] == 2
        assert second.json()["class_name"] == "701"

    def test_create_for_unknown_class(self, client):
        response = client.post(f"{SETTINGS}/areas", json={"name": "走廊", "class_id": 9})
        assert response.status_code == 404

    def test_list_in_rank_order(self, client, make_class, make_area):
        school_class = make_class("701")
        late = make_area("late", school_class, rank=2)
        early = make_area("early", school_class, rank=1)

        response = client.get(f"{SETTINGS}/areas")
        assert [a["id"] for a in response.json()] == [early.id, late.id]

    def test_move_up_at_top(self, client, make_class, make_area):
        school_class = make_class("701")
        top = make_area("A", school_class)
        make_area("B", school_class)

        response = client.post(f"{SETTINGS}/areas/{top.id}/move-up")

        assert response.status_code == 400
        assert response.json()["detail"] == "已經在最上方"

    def test_move_down_at_bottom(self, client, make_class, make_area):
        school_class = make_class("701")
        make_area("A", school_class)
        bottom = make_area("B", school_class)

        response = client.post(f"{SETTINGS}/areas/{bottom.id}/move-down")

        assert response.status_code == 400
        assert response.json()["detail"] == "已經在最下方"

    def test_move_down_and_list(self, client, make_class, make_area):
        school_class = make_class("701")
        a = make_area("A", school_class)
        b = make_area("B", school_class)

        assert client.post(f"{SETTINGS}/areas/{a.id}/move-down").status_code == 200

        response = client.get(f"{SETTINGS}/areas")
        assert [(x["id"], x["rank"]) for x in response.json()] == [(b.id, 1), (a.id, 2)]

    def test_move_unknown(self, client):
        assert client.post(f"{SETTINGS}/areas/42/move-up").status_code == 404

    def test_bulk_reorder(self, client, make_class, make_area):
        school_class = make_class("701")
        a = make_area("A", school_class)
        b = make_area("B", school_class)

        response = client.put(
            f"{SETTINGS}/areas/ranks",
            json=[{"id": a.id, "rank": 2}, {"id": b.id, "rank": 1}],
        )

        assert response.status_code == 200
        listing = client.get(f"{SETTINGS}/areas").json()
        assert [x["id"] for x in listing] == [b.id, a.id]

    def test_bulk_reorder_collision(self, client, make_class, make_area):
        school_class = make_class("701")
        a = make_area("A", school_class)
        make_area("B", school_class)

        response = client.put(f"{SETTINGS}/areas/ranks", json=[{"id": a.id, "rank": 2}])
        assert response.status_code == 409

    def test_update_moves_to_other_class(self, client, make_class, make_area):
        a_class = make_class("701")
        b_class = make_class("702")
        area = make_area("走廊", a_class)

        response = client.patch(f"{SETTINGS}/areas/{area.id}", json={"name": "東側走廊", "class_id": b_class.id})

        assert response.status_code == 200
        assert response.json()["class_name"] == "702"
        assert response.json()["rank"] == 1

    def test_delete_renumbers_and_removes_evidence(self, client, fake_storage, make_class, make_area, make_report):
        school_class = make_class("701")
        a = make_area("A", school_class)
        b = make_area("B", school_class)
        c = make_area("C", school_class)
        make_report(a, "2024-06-10", "垃圾未清", evidence=["evidence/22222222222"])

        assert client.delete(f"{SETTINGS}/areas/{a.id}").status_code == 200

        listing = client.get(f"{SETTINGS}/areas").json()
        assert [(x["id"], x["rank"]) for x in listing] == [(b.id, 1), (c.id, 2)]
        assert fake_storage.removed == ["evidence/22222222222"]


class TestDefaultsAPI:

    def test_create_and_move(self, client):
        first = client.post(f"{SETTINGS}/defaults", json={"shorthand": "地", "text": "地板有垃圾"}).json()
        second = client.post(f"{SETTINGS}/defaults", json={"shorthand": "桌", "text": "桌面未擦拭"}).json()
        assert (first["rank"], second["rank"]) == (1, 2)

        assert client.post(f"{SETTINGS}/defaults/{second['id']}/move-up").status_code == 200

        listing = client.get(f"{SETTINGS}/defaults").json()
        assert [d["id"] for d in listing] == [second["id"], first["id"]]

    def test_duplicate_shorthand_conflict(self, client, make_default):
        make_default("地板有垃圾", shorthand="地")
        response = client.post(f"{SETTINGS}/defaults", json={"shorthand": "地", "text": "地板濕滑"})
        assert response.status_code == 409

    def test_update(self, client, make_default):
        default = make_default("地板有垃圾", shorthand="地")
        response = client.patch(
            f"{SETTINGS}/defaults/{default.id}",
            json={"shorthand": "地", "text": "地板有紙屑"},
        )
        assert response.status_code == 200
        assert response.json()["text"] == "地板有紙屑"

    def test_delete_closes_gap(self, client, make_default):
        a = make_default("a", shorthand="a")
        b = make_default("b", shorthand="b")
        c = make_default("c", shorthand="c")

        assert client.delete(f"{SETTINGS}/defaults/{b.id}").status_code == 200

        listing = client.get(f"{SETTINGS}/defaults").json()
        assert [(d["id"], d["rank"]) for d in listing] == [(a.id, 1), (c.id, 2)]

    def test_move_down_at_bottom(self, client, make_default):
        only = make_default("a", shorthand="a")
        response = client.post(f"{SETTINGS}/defaults/{only.id}/move-down")
        assert response.status_code == 400
        assert response.json()["detail"] == "已經在最下方"


class TestAccountsAPI:

    def test_list_includes_signed_in_admin(self, client, admin_user):
        response = client.get(f"{SETTINGS}/accounts")
        assert response.status_code == 200
        assert [a["email"] for a in response.json()] == [admin_user.email]

    def test_create_lowercases_email(self, client):
        response = client.post(f"{SETTINGS}/accounts", json={"email": "Homeroom@School.Test"})
        assert response.status_code == 200
        assert response.json()["email"] == "homeroom@school.test"

    def test_duplicate_email_conflict(self, client, admin_user):
        response = client.post(f"{SETTINGS}/accounts", json={"email": admin_user.email})
        assert response.status_code == 409

    @pytest.mark.parametrize("email", ["not-an-email", "", "a@b"])
    def test_invalid_email(self, client, email):
        response = client.post(f"{SETTINGS}/accounts", json={"email": email})
        assert response.status_code == 422

    def test_delete(self, client):
        created = client.post(f"{SETTINGS}/accounts", json={"email": "x@school.test"}).json()
        assert client.delete(f"{SETTINGS}/accounts/{created['id']}").status_code == 200
        emails = [a["email"] for a in client.get(f"{SETTINGS}/accounts").json()]
        assert "x@school.test" not in emails

    def test_delete_unknown(self, client):
        assert client.delete(f"{SETTINGS}/accounts/no-such-id").status_code == 404
