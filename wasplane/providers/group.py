"""
Provider group: grupos del registro de archivos (VMM) y sus roles administrativos.

Estado:
- fileRegistry.xml: descripción y miembros del grupo
- admin-authz.xml / audit-authz.xml: roles asignados al grupo

Miembros y roles se aplican con altas/bajas incrementales; cualquier cambio de roles
recarga la autorización (AuthorizationGroupManager.refreshAll) tras el save.
"""

from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import field_validator

from wasplane.core.infra.base import BaseProvider
from wasplane.core.infra.contracts import Executor
from wasplane.core.models import ResourceDeclaration
from wasplane.core.runtime.state import ChangeSet, CurrentState, MembershipChange
from wasplane.core.scope import ScopePath
from wasplane.core.script import BindOp, CreateOp, DeleteOp, MemberOp, SaveOp, Script, TaskOp, Var
from wasplane.providers.xml_state import XmlDocument, open_document


AUDITOR = "auditor"

ROLES = (
    "administrator",
    "operator",
    "configurator",
    "monitor",
    "deployer",
    "adminsecuritymanager",
    "nobody",
    "iscadmins",
    AUDITOR,
)

GROUP_UNIQUE_NAME = Var("groupUniqueName")

# Un miembro puede ser usuario (uid) u otro grupo (cn)
MEMBER_LOOKUPS = (("searchUsers", "uid"), ("searchGroups", "cn"))

GROUP_QUERY = "//wim:entities[@xsi:type='wim:Group'][wim:cn=$group]"
ROLES_QUERY = "//roles[@xmi:id = //authorizations[groups/@name=$group]/@role]/@roleName"


def short_name(unique_name: str) -> str:
    """uid=jdoe,o=defaultWIMFileBasedRealm → jdoe"""
    first = unique_name.split(",", 1)[0]
    return first.split("=", 1)[1] if "=" in first else first


class GroupDeclaration(ResourceDeclaration):
    kind: ClassVar[str] = "group"
    identity_fields: ClassVar[Tuple[str, ...]] = ("groupid", "cell")
    properties: ClassVar[Tuple[str, ...]] = ("description", "members", "roles")
    identifier_fields: ClassVar[Tuple[str, ...]] = ("user", "dmgr_profile", "profile", "groupid", "cell")
    title_patterns: ClassVar = ((r"(.+)", ("groupid",)),)

    groupid: str
    cell: str
    description: Optional[str] = None
    members: Optional[List[str]] = None
    roles: Optional[List[str]] = None
    enforce_members: bool = False

    @field_validator("roles")
    @classmethod
    def _known_roles(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        unknown = [role for role in value if role not in ROLES]
        if unknown:
            raise ValueError(f"Roles desconocidos: {', '.join(unknown)}. Válidos: {', '.join(ROLES)}")
        return value


class GroupProvider(BaseProvider):
    kind = "group"
    declaration_class = GroupDeclaration
    membership = ("members", "roles")
    refresh_on = ("roles",)

    def enforce_membership(self, attribute: str) -> bool:
        if attribute == "members":
            return self.resource.enforce_members
        return True

    def _document(self, filename: str) -> Optional[XmlDocument]:
        r = self.resource
        scope = ScopePath.from_identity("cell", r.cell)
        return open_document(scope.document(r.profile_dir(r.dmgr_profile), filename))

    def read_state(self, executor: Executor) -> Optional[CurrentState]:
        group = self.resource.groupid
        registry = self._document("fileRegistry.xml")
        if registry is None or registry.first(GROUP_QUERY, group=group) is None:
            return None

        members = [
            short_name(name)
            for name in registry.values(f"{GROUP_QUERY}/wim:members/wim:identifier/@uniqueName", group=group)
        ]
        roles: List[str] = []
        for filename in ("admin-authz.xml", "audit-authz.xml"):
            authz = self._document(filename)
            if authz is not None:
                roles.extend(role for role in authz.values(ROLES_QUERY, group=group) if role not in roles)

        return CurrentState({
            "description": registry.text(f"{GROUP_QUERY}/wim:description", group=group),
            "members": members,
            "roles": roles,
        })

    def bind_group(self) -> BindOp:
        return BindOp(GROUP_UNIQUE_NAME.name, "searchGroups", (("cn", self.resource.groupid),))

    def create_script(self) -> Script:
        r = self.resource
        optional = (("description", r.description),) if r.description else ()
        return Script.create(CreateOp(task="createGroup", required=(("cn", r.groupid),), optional=optional))

    def created_state(self) -> CurrentState:
        # Miembros y roles se aplican en el pase siguiente
        return CurrentState({"description": self.resource.description, "members": [], "roles": []})

    def _member_ops(self, change: MembershipChange) -> List[MemberOp]:
        group_arg = (("groupUniqueName", GROUP_UNIQUE_NAME),)
        ops = []
        if change.additions:
            ops.append(MemberOp("addMemberToGroup", change.additions, "memberUniqueName", group_arg, MEMBER_LOOKUPS))
        if change.removals:
            ops.append(MemberOp("removeMemberFromGroup", change.removals, "memberUniqueName", group_arg, MEMBER_LOOKUPS))
        return ops

    def _role_ops(self, change: MembershipChange) -> List[MemberOp]:
        groupids = (("groupids", self.resource.groupid),)
        tasks = (
            (change.additions, "mapGroupsToAdminRole", "mapGroupsToAuditRole"),
            (change.removals, "removeGroupsFromAdminRole", "removeGroupsFromAuditRole"),
        )
        ops = []
        for roles, admin_task, audit_task in tasks:
            admin = tuple(role for role in roles if role != AUDITOR)
            if admin:
                ops.append(MemberOp(admin_task, admin, "roleName", groupids))
            if AUDITOR in roles:
                ops.append(MemberOp(audit_task, (AUDITOR,), "roleName", groupids))
        return ops

    def update_script(self, changes: ChangeSet) -> Optional[Script]:
        ops: List[Any] = []
        if "description" in changes.values:
            ops.append(TaskOp(
                "updateGroup",
                (("uniqueName", GROUP_UNIQUE_NAME), ("description", changes.values["description"])),
            ))
        for change in changes.memberships:
            if change.attribute == "members":
                ops.extend(self._member_ops(change))
            else:
                ops.extend(self._role_ops(change))
        if not ops:
            return None
        return Script.update([self.bind_group(), *ops], refresh=changes.needs_refresh)

    def destroy_script(self) -> Script:
        delete = DeleteOp(task="deleteGroup", args=(("uniqueName", GROUP_UNIQUE_NAME),))
        return Script((self.bind_group(), delete, SaveOp()))

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info["enforce_members"] = self.resource.enforce_members
        return info
