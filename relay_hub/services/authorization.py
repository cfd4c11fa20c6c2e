from relay_hub.models import OperatorSession, Role


def can_issue_command(session: OperatorSession) -> bool:
    """Only admins may drive devices; every other role is read-only."""
    return session.role == Role.ADMIN
