import pytest

import actions


def new_user(role="SALES_AGENT", username="newagent"):
    return {"username": username, "password": "s3cretpass", "name": "New Person", "role": role}


@pytest.mark.parametrize("role", ["ADMIN", "MANAGER", "SALES_AGENT"])
def test_admin_creates_any_role(admin, role):
    result = actions.create_user(admin, new_user(role))
    assert result["success"] is True
    assert result["user"]["role"] == role
    assert "password_hash" not in result["user"]


def test_password_is_hashed(admin, store):
    actions.create_user(admin, new_user())
    stored = store["user"].find_one({"username": "newagent"})
    assert stored["password_hash"] != "s3cretpass"
    assert actions.pwd_context.verify("s3cretpass", stored["password_hash"])


def test_manager_only_creates_sales_agents(manager, store):
    assert actions.create_user(manager, new_user("SALES_AGENT"))["success"] is True
    denied = actions.create_user(manager, new_user("MANAGER", username="manager02"))
    assert denied["success"] is False
    assert denied["message"] == "You only have access to create sales agent"
    assert store["user"].count_documents({"username": "manager02"}) == 0


def test_sales_agent_cannot_create_users(agent):
    assert actions.create_user(agent, new_user())["success"] is False


@pytest.mark.parametrize("field,value", [("username", "abcd"), ("password", "short"), ("name", "Bob")])
def test_user_field_minimums(admin, field, value):
    result = actions.create_user(admin, {**new_user(), field: value})
    assert result["success"] is False
    assert field in result["errors"]


def test_username_must_be_unused(admin):
    actions.create_user(admin, new_user())
    again = actions.create_user(admin, new_user())
    assert again["success"] is False
    assert again["message"] == "Username already taken."


def test_admin_accounts_cannot_be_deleted(admin, store):
    other_admin = actions.create_user(admin, new_user("ADMIN", username="admin02"))["user"]["id"]
    result = actions.delete_user(admin, other_admin)
    assert result["success"] is False
    assert result["message"] == "You can't delete an admin user"
    assert any(u["id"] == other_admin for u in actions.list_users(admin)["data"])


def test_only_admin_deletes_users(admin, manager, agent):
    assert actions.delete_user(manager, agent.id)["success"] is False
    assert actions.delete_user(admin, agent.id)["success"] is True
    assert actions.delete_user(admin, agent.id)["message"] == "User not found"


def test_list_users_filters_and_hides_hashes(admin, manager, agent):
    everyone = actions.list_users(admin)
    assert everyone["pagination"]["total"] == 3
    assert everyone["pagination"]["limit"] == 10
    assert all("password_hash" not in u for u in everyone["data"])

    managers = actions.list_users(admin, role="MANAGER")
    assert [u["username"] for u in managers["data"]] == ["manager01"]
    assert actions.list_users(admin, role="ALL")["data"] == everyone["data"]
    assert [u["username"] for u in actions.list_users(agent, q="AGENT")["data"]] == ["agent01"]


def test_authenticate(admin):
    actions.create_user(admin, new_user())
    ok = actions.authenticate({"username": "newagent", "password": "s3cretpass"})
    assert ok["success"] is True
    assert ok["user"]["role"] == "SALES_AGENT"
    assert "password_hash" not in ok["user"]

    bad = actions.authenticate({"username": "newagent", "password": "wrong-password"})
    assert bad["success"] is False
    assert bad.status_code == 401
    assert actions.authenticate({"username": "ghost", "password": "whatever1"})["success"] is False


def test_load_actor_reads_role_from_store(manager):
    actor = actions.load_actor(manager.id)
    assert actor.role.value == "MANAGER"
    assert actions.load_actor(None) is None
    assert actions.load_actor("0" * 24) is None
