from apps.commissions.engine import CommissionEngine
from .ledger import BillLedger


def build_commission_engine(workspace) -> CommissionEngine:
    return CommissionEngine(workspace.commissions, workspace.professionals)


def build_ledger(workspace, invoice_config=None) -> BillLedger:
    """Ledger wired to the workspace's repositories and commission engine"""
    return BillLedger(
        workspace,
        commission_engine=build_commission_engine(workspace),
        invoice_config=invoice_config,
    )


def author_of(user) -> dict:
    """Operator stamp stored on bills"""
    if user is None or not getattr(user, 'is_authenticated', False):
        return {'username': '', 'name': ''}
    return {
        'username': user.get_username(),
        'name': user.get_full_name() or user.get_username(),
    }
