"""Organizations, team features and workspaces."""

import pytest

from conftest import assert_problem, auth_headers
from formloom_api.db.models import Form, OrganizationMember, OrganizationRole, Workspace


class TestOrganizationListing:
    def test_first_listing_provisions_personal_organization(self, test_client, db_session, make_user):
        user = make_user(email="ada@example.com")

        response = test_client.get("/v1/organizations", headers=auth_headers(user))

        assert response.status_code == 200
        orgs = response.json()
        assert len(orgs) == 1
        assert orgs[0]["name"] == "ada@example.com"
        assert orgs[0]["slug"] == "adaexamplecom"
        assert orgs[0]["role"] == "OWNER"

        workspaces = db_session.query(Workspace).filter_by(organization_id=orgs[0]["id"]).all()
        assert [w.name for w in workspaces] == ["My Workspace"]

    def test_listing_is_idempotent(self, test_client, make_user):
        user = make_user()

        test_client.get("/v1/organizations", headers=auth_headers(user))
        response = test_client.get("/v1/organizations", headers=auth_headers(user))

        assert len(response.json()) == 1

    def test_lists_all_memberships_with_roles(self, test_client, make_user, make_org, add_member):
        user = make_user()
        other = make_user()
        make_org(user, "Own Org")
        shared, _ = make_org(other, "Shared Org")
        add_member(user, shared, OrganizationRole.EDITOR.value)

        orgs = test_client.get("/v1/organizations", headers=auth_headers(user)).json()

        assert {(o["name"], o["role"]) for o in orgs} == {("Own Org", "OWNER"), ("Shared Org", "EDITOR")}


class TestOrganizationCreate:
    def test_create_makes_caller_owner_with_default_workspace(self, test_client, db_session, make_user):
        user = make_user()

        response = test_client.post("/v1/organizations", json={"name": "Acme Labs"}, headers=auth_headers(user))

        assert response.status_code == 201
        data = response.json()
        assert data["slug"] == "acme-labs"
        assert data["role"] == "OWNER"
        workspace = db_session.query(Workspace).filter_by(organization_id=data["id"]).one()
        assert workspace.slug == "my-workspace"

    def test_duplicate_names_get_counter_suffix(self, test_client, make_user):
        user = make_user()

        first = test_client.post("/v1/organizations", json={"name": "Acme"}, headers=auth_headers(user))
        second = test_client.post("/v1/organizations", json={"name": "Acme"}, headers=auth_headers(user))

        assert first.json()["slug"] == "acme"
        assert second.json()["slug"] == "acme-1"

    def test_empty_name_is_validation_error(self, test_client, make_user):
        user = make_user()

        response = test_client.post("/v1/organizations", json={"name": ""}, headers=auth_headers(user))

        assert_problem(response, 400)


class TestTeamFeatures:
    def test_rename_requires_pro(self, test_client, make_user, make_org):
        owner = make_user(plan="free")
        organization, _ = make_org(owner)

        response = test_client.patch(
            f"/v1/organizations/{organization.id}", json={"name": "Renamed"}, headers=auth_headers(owner)
        )

        data = assert_problem(response, 403)
        assert data["detail"] == "Organization name editing requires PRO plan"

    def test_lapsed_pro_subscription_counts_as_free(self, test_client, make_user, make_org):
        owner = make_user(plan="pro", subscription_status="past_due")
        organization, _ = make_org(owner)

        response = test_client.patch(
            f"/v1/organizations/{organization.id}", json={"name": "Renamed"}, headers=auth_headers(owner)
        )

        assert_problem(response, 403)

    def test_pro_owner_renames(self, test_client, make_user, make_org):
        owner = make_user(plan="pro", subscription_status="active")
        organization, _ = make_org(owner)

        response = test_client.patch(
            f"/v1/organizations/{organization.id}", json={"name": "Renamed Co"}, headers=auth_headers(owner)
        )

        assert response.status_code == 200
        assert response.json()["slug"] == "renamed-co"
        assert response.json()["role"] == "OWNER"

    def test_rename_to_taken_name_is_rejected(self, test_client, make_user, make_org):
        owner = make_user(plan="pro", subscription_status="active")
        organization, _ = make_org(owner, "First")
        make_org(owner, "Second")

        response = test_client.patch(
            f"/v1/organizations/{organization.id}", json={"name": "Second"}, headers=auth_headers(owner)
        )

        data = assert_problem(response, 400)
        assert data["detail"] == "Organization with this name already exists"

    def test_pro_editor_cannot_rename(self, test_client, make_user, make_org, add_member):
        owner = make_user()
        editor = make_user(plan="pro", subscription_status="cancel_at_period_end")
        organization, _ = make_org(owner)
        add_member(editor, organization, OrganizationRole.EDITOR.value)

        response = test_client.patch(
            f"/v1/organizations/{organization.id}", json={"name": "Renamed"}, headers=auth_headers(editor)
        )

        data = assert_problem(response, 403)
        assert data["detail"] == "Only owners and admins can update organization"

    def test_invite_existing_user(self, test_client, db_session, make_user, make_org):
        owner = make_user(plan="pro", subscription_status="active")
        invitee = make_user(email="grace@example.com")
        organization, _ = make_org(owner)

        response = test_client.post(
            f"/v1/organizations/{organization.id}/members",
            json={"email": "grace@example.com", "role": "EDITOR"},
            headers=auth_headers(owner),
        )

        assert response.status_code == 201
        assert response.json()["user_id"] == invitee.id
        assert response.json()["role"] == "EDITOR"
        member = db_session.query(OrganizationMember).filter_by(
            user_id=invitee.id, organization_id=organization.id
        ).one()
        assert member.role == "EDITOR"

    def test_invite_defaults_to_viewer(self, test_client, make_user, make_org):
        owner = make_user(plan="pro", subscription_status="active")
        make_user(email="lin@example.com")
        organization, _ = make_org(owner)

        response = test_client.post(
            f"/v1/organizations/{organization.id}/members",
            json={"email": "lin@example.com"},
            headers=auth_headers(owner),
        )

        assert response.json()["role"] == "VIEWER"

    def test_invite_unknown_email(self, test_client, make_user, make_org):
        owner = make_user(plan="pro", subscription_status="active")
        organization, _ = make_org(owner)

        response = test_client.post(
            f"/v1/organizations/{organization.id}/members",
            json={"email": "nobody@example.com"},
            headers=auth_headers(owner),
        )

        data = assert_problem(response, 404)
        assert data["detail"] == "User with this email not found. They need to sign up first."

    def test_invite_existing_member(self, test_client, make_user, make_org, add_member):
        owner = make_user(plan="pro", subscription_status="active")
        member = make_user(email="kim@example.com")
        organization, _ = make_org(owner)
        add_member(member, organization, OrganizationRole.VIEWER.value)

        response = test_client.post(
            f"/v1/organizations/{organization.id}/members",
            json={"email": "kim@example.com"},
            headers=auth_headers(owner),
        )

        data = assert_problem(response, 400)
        assert data["detail"] == "User is already a member of this organization"

    @pytest.mark.parametrize("body", [{"email": "not-an-email"}, {"email": "a@b.co", "role": "SUPERUSER"}])
    def test_invite_validation(self, test_client, make_user, make_org, body):
        owner = make_user(plan="pro", subscription_status="active")
        organization, _ = make_org(owner)

        response = test_client.post(
            f"/v1/organizations/{organization.id}/members", json=body, headers=auth_headers(owner)
        )

        assert_problem(response, 400)

    def test_invite_requires_pro(self, test_client, make_user, make_org):
        owner = make_user(plan="hobby", subscription_status="active")
        make_user(email="sam@example.com")
        organization, _ = make_org(owner)

        response = test_client.post(
            f"/v1/organizations/{organization.id}/members",
            json={"email": "sam@example.com"},
            headers=auth_headers(owner),
        )

        data = assert_problem(response, 403)
        assert data["detail"] == "Team member invites require PRO plan"


class TestWorkspaces:
    def test_editor_creates_workspace(self, test_client, make_user, make_org, add_member):
        owner = make_user()
        editor = make_user()
        organization, _ = make_org(owner)
        add_member(editor, organization, OrganizationRole.EDITOR.value)

        response = test_client.post(
            "/v1/workspaces",
            json={"name": "Marketing Team", "organization_id": organization.id},
            headers=auth_headers(editor),
        )

        assert response.status_code == 201
        assert response.json()["slug"] == "marketing-team"

    def test_viewer_cannot_create_workspace(self, test_client, make_user, make_org, add_member):
        owner = make_user()
        viewer = make_user()
        organization, _ = make_org(owner)
        add_member(viewer, organization, OrganizationRole.VIEWER.value)

        response = test_client.post(
            "/v1/workspaces",
            json={"name": "Sales", "organization_id": organization.id},
            headers=auth_headers(viewer),
        )

        assert_problem(response, 403)

    def test_duplicate_workspace_name_is_rejected(self, test_client, make_user, make_org):
        owner = make_user()
        organization, _ = make_org(owner)

        response = test_client.post(
            "/v1/workspaces",
            json={"name": "my workspace", "organization_id": organization.id},
            headers=auth_headers(owner),
        )

        data = assert_problem(response, 400)
        assert data["detail"] == "Workspace with this name already exists"

    def test_listing_recreates_default_workspace(self, test_client, db_session, make_user, make_org):
        owner = make_user()
        organization, default_ws = make_org(owner)
        test_client.post(
            "/v1/workspaces",
            json={"name": "Research", "organization_id": organization.id},
            headers=auth_headers(owner),
        )
        db_session.delete(db_session.get(Workspace, default_ws.id))
        db_session.commit()

        response = test_client.get(
            f"/v1/organizations/{organization.id}/workspaces", headers=auth_headers(owner)
        )

        assert response.status_code == 200
        assert [w["name"] for w in response.json()] == ["My Workspace", "Research"]

    def test_rename_workspace(self, test_client, make_user, make_org):
        owner = make_user()
        _, workspace = make_org(owner)

        response = test_client.patch(
            f"/v1/workspaces/{workspace.id}", json={"name": "Client Work"}, headers=auth_headers(owner)
        )

        assert response.status_code == 200
        assert response.json()["slug"] == "client-work"

    @pytest.mark.parametrize(
        "path",
        ["/v1/workspaces/not-a-uuid", "/v1/organizations/not-a-uuid/workspaces"],
    )
    def test_malformed_ids_are_validation_errors(self, test_client, make_user, path):
        user = make_user()

        response = test_client.get(path, headers=auth_headers(user))

        assert_problem(response, 400)

    def test_delete_requires_admin(self, test_client, make_user, make_org, add_member):
        owner = make_user()
        editor = make_user()
        organization, workspace = make_org(owner)
        add_member(editor, organization, OrganizationRole.EDITOR.value)

        response = test_client.delete(f"/v1/workspaces/{workspace.id}", headers=auth_headers(editor))

        data = assert_problem(response, 403)
        assert data["detail"] == "You need at least ADMIN role to perform this action"

    def test_admin_delete_cascades_forms(self, test_client, db_session, make_user, make_org, add_member):
        owner = make_user()
        admin = make_user()
        organization, workspace = make_org(owner)
        add_member(admin, organization, OrganizationRole.ADMIN.value)
        form_id = test_client.post(
            "/v1/forms", json={"name": "Doomed", "workspace_id": workspace.id}, headers=auth_headers(owner)
        ).json()["id"]

        response = test_client.delete(f"/v1/workspaces/{workspace.id}", headers=auth_headers(admin))

        assert response.status_code == 204
        db_session.expire_all()
        assert db_session.get(Form, form_id) is None
