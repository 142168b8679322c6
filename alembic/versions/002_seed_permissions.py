"""Seed permissions, default roles and app settings

Revision ID: 002
Revises: 001
Create Date: 2026-01-12 00:10:00.000000+00:00

What:  Inserts the permission catalogue, the Admin role (every
       permission), the User role given to self-registered accounts
       (view_dashboard, view_applications) and the default app settings.
How:   Plain INSERTs through lightweight sa.table() definitions so the
       migration does not depend on the ORM models as they evolve.

Rollback: removes exactly the rows inserted here.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# (module, resource slug suffix, actions)
CRUD_MODULES = [
    ("Applications", "applications", ("view", "add", "edit", "delete")),
    ("Companies", "companies", ("view", "add", "edit", "delete")),
    ("Branches", "branches", ("view", "add", "edit", "delete")),
    ("Application Documents", "application_documents", ("view", "add", "edit", "delete")),
    ("Company Documents", "company_documents", ("view", "add", "edit", "delete")),
    ("Users", "users", ("view", "add", "edit", "delete")),
    ("Roles", "roles", ("view", "add", "edit", "delete")),
]

EXTRA_PERMISSIONS = [
    ("view_dashboard", "View Dashboard", "Dashboard", "view"),
    ("view_audit_logs", "View Audit Logs", "Audit Logs", "view"),
    ("manage_settings", "Manage Settings", "Settings", "edit"),
]

USER_ROLE_PERMISSIONS = ("view_dashboard", "view_applications")

DEFAULT_SETTINGS = {
    "business_name": "",
    "business_email": "",
    "default_cc": "",
    "reply_to": "",
    "maintenance_mode": False,
    "file_number_prefix": "ULF",
    "file_number_sequence": 1000,
    "padding": 4,
}

permissions_table = sa.table(
    "permissions",
    sa.column("slug", sa.String),
    sa.column("name", sa.String),
    sa.column("description", sa.Text),
    sa.column("module", sa.String),
    sa.column("action", sa.String),
)
roles_table = sa.table(
    "roles",
    sa.column("name", sa.String),
    sa.column("description", sa.Text),
)
settings_table = sa.table(
    "app_settings",
    sa.column("key", sa.String),
    sa.column("value", sa.JSON),
)


def permission_rows():
    rows = []
    for module, resource, actions in CRUD_MODULES:
        for action in actions:
            rows.append(
                {
                    "slug": f"{action}_{resource}",
                    "name": f"{action.capitalize()} {module}",
                    "description": f"Can {action} {module.lower()}",
                    "module": module,
                    "action": action,
                }
            )
    for slug, name, module, action in EXTRA_PERMISSIONS:
        rows.append(
            {"slug": slug, "name": name, "description": f"Can {name.lower()}", "module": module, "action": action}
        )
    return rows


def upgrade() -> None:
    op.bulk_insert(permissions_table, permission_rows())
    op.bulk_insert(
        roles_table,
        [
            {"name": "Admin", "description": "Full access to every module and company"},
            {"name": "User", "description": "Default role for self-registered accounts"},
        ],
    )

    op.execute(
        sa.text(
            "INSERT INTO role_permissions (role_id, permission_id) "
            "SELECT r.id, p.id FROM roles r CROSS JOIN permissions p WHERE r.name = 'Admin'"
        )
    )
    op.get_bind().execute(
        sa.text(
            "INSERT INTO role_permissions (role_id, permission_id) "
            "SELECT r.id, p.id FROM roles r CROSS JOIN permissions p "
            "WHERE r.name = 'User' AND p.slug IN :slugs"
        ).bindparams(sa.bindparam("slugs", expanding=True)),
        {"slugs": list(USER_ROLE_PERMISSIONS)},
    )

    op.bulk_insert(
        settings_table,
        [{"key": key, "value": value} for key, value in DEFAULT_SETTINGS.items()],
    )


def downgrade() -> None:
    bind = op.get_bind()
    bind.execute(
        sa.text("DELETE FROM app_settings WHERE key IN :keys").bindparams(sa.bindparam("keys", expanding=True)),
        {"keys": list(DEFAULT_SETTINGS)},
    )
    op.execute(
        sa.text(
            "DELETE FROM role_permissions WHERE role_id IN "
            "(SELECT id FROM roles WHERE name IN ('Admin', 'User'))"
        )
    )
    op.execute(sa.text("DELETE FROM roles WHERE name IN ('Admin', 'User')"))
    bind.execute(
        sa.text("DELETE FROM permissions WHERE slug IN :slugs").bindparams(sa.bindparam("slugs", expanding=True)),
        {"slugs": [row["slug"] for row in permission_rows()]},
    )
