"""
Authorization
Single role check called at the entry of every gated operation
"""

from typing import Iterable, Optional

from ..errors import UnauthorizedError
from ..schemas import Caller, ConversionSession, Role

ADMIN_ROLES = frozenset({Role.MASTER, Role.PARTNER, Role.EMPLOYEE})


def authorize(caller: Optional[Caller], required_roles: Iterable[Role] = ADMIN_ROLES) -> Role:
    """
    Check the caller's role

    Returns:
        Role: the caller's role when allowed

    Raises:
        UnauthorizedError: anonymous caller or role outside `required_roles`
    """
    if caller is None:
        raise UnauthorizedError("Acesso negado. Usuário não autenticado.")
    if caller.role not in set(required_roles):
        raise UnauthorizedError("Acesso negado. Apenas admins podem gerenciar conversões.")
    return caller.role


def authorize_session_owner(caller: Caller, session: ConversionSession) -> None:
    """Only the admin who started a session (or a master) may change it"""
    if caller.role != Role.MASTER and caller.user_id != session.admin_id:
        raise UnauthorizedError("Acesso negado. Sessão pertence a outro administrador.")
