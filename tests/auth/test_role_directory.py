from shiftboard.auth.roles import RoleDirectory, role_doc_id


def _role(store, user_id, store_id, role, resigned=False):
    store.set(
        f"userStoreRoles/{role_doc_id(user_id, store_id)}",
        {"userId": user_id, "storeId": store_id, "role": role, "isResigned": resigned},
    )


def test_get_reads_role_document(store):
    _role(store, "u1", "s1", "senior")

    role = RoleDirectory(store).get("u1", "s1")

    assert role.id == "u1_s1"
    assert role.role == "senior"
    assert RoleDirectory(store).get("u1", "s9") is None


def test_resolve_role_prefers_store_assignment(store):
    _role(store, "u1", "s1", "staff")
    _role(store, "u1", "s2", "manager")

    directory = RoleDirectory(store)

    assert directory.resolve_role("u1", "s1") == "staff"
    assert directory.resolve_role("u1", None) == "manager"


def test_resolve_role_falls_back_to_highest_active_role(store):
    _role(store, "u1", "s1", "owner", resigned=True)
    _role(store, "u1", "s2", "senior")

    directory = RoleDirectory(store)

    assert directory.resolve_role("u1", "s1") == "senior"
    assert directory.resolve_role("u2", "s1") is None
