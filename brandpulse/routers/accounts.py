"""
Connected social account endpoints.
"""

import logging
from fastapi import APIRouter, Depends, Query

from brandpulse.errors import NotFound
from brandpulse.models import SocialAccount
from brandpulse.routers.dependencies import get_tenant_store
from brandpulse.storage.tenant_store import TenantStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/accounts", tags=["accounts"])


def serialize_account(account: SocialAccount) -> dict:
    # Tokens stay server-side
    return {
        "id": account.id,
        "platform": account.platform,
        "account_id": account.account_id,
        "account_name": account.account_name,
        "is_active": account.is_active,
        "token_expires_at": account.token_expires_at.isoformat() if account.token_expires_at else None,
        "created_at": account.created_at.isoformat() if account.created_at else None,
    }


@router.get("")
def list_accounts(include_inactive: bool = Query(False), store: TenantStore = Depends(get_tenant_store)):
    accounts = store.list_accounts(active_only=not include_inactive)
    return {"accounts": [serialize_account(a) for a in accounts]}


@router.delete("/{account_id}")
def disconnect_account(account_id: int, store: TenantStore = Depends(get_tenant_store)):
    """Deactivate a connected account. Its mentions are kept."""
    account = store.get_account(account_id)
    if account is None:
        raise NotFound("Social account not found or access denied")

    account.is_active = False
    store.commit()
    logger.info(f"Disconnected {account.platform} account {account.id}")
    return {"success": True, "account": serialize_account(account)}
