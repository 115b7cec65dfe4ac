"""
Tests for the design review routes.
"""
from fastapi import status


def _upload(client, project_id, category, *names):
    return client.post(
        f"/api/projects/{project_id}/design-files/upload",
        data={"category": category},
        files=[("files", (name, b"%PDF-1.7 data", "application/pdf")) for name in names],
    )


def test_requires_authentication(client, project):
    response = client.get(f"/api/projects/{project.id}/design-files")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_upload_and_list(client, project, designer):
    client.login(designer)

    response = _upload(client, project.id, "Kitchen", "plan.pdf", "elevation.pdf")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["succeeded_count"] == 2
    assert data["failed_count"] == 0
    assert [d["version_number"] for d in data["succeeded"]] == [1, 2]
    assert all(d["approval_status"] == "pending" for d in data["succeeded"])

    listing = client.get(f"/api/projects/{project.id}/design-files").json()
    assert listing["total"] == 2
    kitchen = listing["categories"][0]
    assert kitchen["name"] == "Kitchen"
    assert kitchen["latest_version"] == 2
    assert [f["version_number"] for f in kitchen["files"]] == [2, 1]


def test_upload_partial_failure(client, project, designer, store):
    store.fail_on.add("broken.pdf")
    client.login(designer)

    data = _upload(client, project.id, "Bath", "ok.pdf", "broken.pdf").json()

    assert data["succeeded_count"] == 1
    assert data["failed"][0]["file_name"] == "broken.pdf"
    assert data["failed"][0]["reason"] == "storage_failure"


def test_employee_cannot_upload(client, project, employee):
    client.login(employee)

    response = _upload(client, project.id, "Kitchen", "plan.pdf")

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == "forbidden"


def test_review_flow(client, db, project, manager, make_design):
    """Approve v1, approve v2: response carries the flipped category flags."""
    v1 = make_design(version_number=1)
    v2 = make_design(version_number=2)
    client.login(manager)

    client.patch(f"/api/design-files/{v1.id}", json={"approval_status": "approved"})
    response = client.patch(
        f"/api/design-files/{v2.id}",
        json={"approval_status": "approved", "admin_comments": "Final"}
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["design"]["is_current_approved"] is True
    flags = {f["id"]: f["is_current_approved"] for f in data["category_files"]}
    assert flags == {v1.id: False, v2.id: True}


def test_second_review_decision_conflicts(client, project, manager, make_design):
    design = make_design()
    client.login(manager)
    client.patch(f"/api/design-files/{design.id}", json={"approval_status": "rejected"})

    response = client.patch(f"/api/design-files/{design.id}", json={"approval_status": "approved"})

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "invalid_transition"


def test_designer_cannot_approve(client, designer, make_design):
    design = make_design()
    client.login(designer)

    response = client.patch(f"/api/design-files/{design.id}", json={"approval_status": "approved"})

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_freeze_blocks_upload(client, project, manager, designer, make_design):
    design = make_design(category="Kitchen")
    client.login(manager)
    assert client.post(f"/api/design-files/{design.id}/freeze").status_code == status.HTTP_200_OK

    client.login(designer)
    response = _upload(client, project.id, "Kitchen", "v2.pdf")

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "category_frozen"

    bedroom = _upload(client, project.id, "Bedroom", "bedroom.pdf")
    assert bedroom.json()["succeeded_count"] == 1

    freeze = client.get(f"/api/projects/{project.id}/design-freeze", params={"category": "Kitchen"}).json()
    assert freeze["is_frozen"] is True


def test_project_wide_freeze(client, project, manager, make_design):
    make_design(category="Kitchen")
    make_design(category="Bath")
    client.login(manager)

    response = client.post(f"/api/projects/{project.id}/freeze-designs")
    assert response.json()["count"] == 2

    response = client.delete(f"/api/projects/{project.id}/freeze-designs", params={"category": "Bath"})
    assert response.json()["count"] == 1


def test_create_with_stale_version_conflicts(client, project, designer, make_design):
    make_design(category="Bath", version_number=1)
    client.login(designer)

    response = client.post("/api/design-files", json={
        "project_id": project.id,
        "category": "Bath",
        "file_name": "bath.pdf",
        "file_url": "https://files.test/bath.pdf",
        "version_number": 1,
    })

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "version_conflict"


def test_create_allocates_version(client, project, designer):
    client.login(designer)

    response = client.post("/api/design-files", json={
        "project_id": project.id,
        "category": "Bath",
        "file_name": "render.png",
        "file_url": "https://files.test/render.png",
    })

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["version_number"] == 1
    assert response.json()["file_type"] == "image"


def test_delete_by_uploader_keeps_slot(client, project, designer):
    client.login(designer)
    uploaded = _upload(client, project.id, "Kitchen", "v1.pdf", "v2.pdf").json()["succeeded"]
    latest_id = uploaded[-1]["id"]

    response = client.delete(f"/api/design-files/{latest_id}")
    assert response.json() == {"success": True, "id": latest_id}

    again = _upload(client, project.id, "Kitchen", "v3.pdf").json()
    assert again["succeeded"][0]["version_number"] == 3


def test_employee_cannot_delete_others_design(client, employee, make_design):
    design = make_design()
    client.login(employee)

    response = client.delete(f"/api/design-files/{design.id}")

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_comments_with_pins(client, project, employee, manager, make_design):
    design = make_design()
    client.login(employee)

    created = client.post(f"/api/design-files/{design.id}/comments", json={
        "comment": "Move this outlet",
        "pin": {"x_percent": 37.5, "y_percent": 60.2},
    })
    assert created.status_code == status.HTTP_201_CREATED
    comment = created.json()
    assert comment["x_percent"] == 37.5
    assert comment["y_percent"] == 60.2

    listing = client.get(f"/api/design-files/{design.id}/comments").json()
    assert listing["total"] == 1
    assert listing["unresolved_pin_count"] == 1

    client.login(manager)
    resolved = client.patch(f"/api/design-comments/{comment['id']}/resolve", json={"is_resolved": True})
    assert resolved.json()["is_resolved"] is True

    detail = client.get(f"/api/design-files/{design.id}").json()
    assert detail["has_pinned_comments"] is True
    assert detail["unresolved_pin_count"] == 0


def test_bulk_review_reports_failures(client, manager, make_design):
    pending = make_design(version_number=1)
    client.login(manager)

    response = client.post("/api/design-files/bulk-review", json={
        "design_ids": [pending.id, 999],
        "action": "approve",
    })

    data = response.json()
    assert data["updated_count"] == 1
    assert data["failed"] == [{"id": 999, "reason": "not_found", "detail": "Design file 999 not found"}]


def test_unknown_design_returns_404(client, manager):
    client.login(manager)
    response = client.get("/api/design-files/4242")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_admin_can_delete_any_design(client, db, admin, make_design):
    design = make_design()
    client.login(admin)

    response = client.delete(f"/api/design-files/{design.id}")

    assert response.status_code == status.HTTP_200_OK
    assert client.get(f"/api/design-files/{design.id}").status_code == status.HTTP_404_NOT_FOUND


def test_freeze_status_matches_upload_label(client, project, manager, make_design):
    design = make_design(category="Kitchen")
    client.login(manager)
    client.post(f"/api/design-files/{design.id}/freeze")

    freeze = client.get(f"/api/projects/{project.id}/design-freeze", params={"category": "Kitchen "}).json()

    assert freeze["category"] == "Kitchen"
    assert freeze["is_frozen"] is True
