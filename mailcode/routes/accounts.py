"""
Account Routes - 账号管理 API

提供账号增删改查、最后登录时间更新、浏览器会话记录等功能。
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from mailcode.core.account_store import AccountStore
from mailcode.models.account import Account

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/accounts", tags=["accounts"])

# 全局账号存储
account_store: Optional[AccountStore] = None


def set_account_store(store: Optional[AccountStore]) -> None:
    """设置全局账号存储"""
    global account_store
    account_store = store


def _get_store() -> AccountStore:
    if account_store is None:
        raise HTTPException(
            status_code=503,
            detail="Service unavailable: Account store not initialized",
        )
    return account_store


# 请求/响应模型
class AccountModel(BaseModel):
    """账号（字段与 accounts.json 一致，使用 camelCase）"""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "id": "acc-1",
                    "email": "user@example.com",
                    "password": "site-password",
                    "emailPassword": "mailbox-password",
                    "smtpServer": "pop.example.com",
                    "smtpPort": 995,
                    "lastLoginTime": "2025-01-31T10:00:00+00:00",
                }
            ]
        },
    )

    id: str = Field(..., min_length=1, description="账号 ID")
    email: str = Field(..., min_length=1, description="登录邮箱")
    password: str = Field(..., description="登录密码")
    email_password: str = Field(..., alias="emailPassword", description="邮箱密码")
    smtp_server: str = Field(..., alias="smtpServer", description="邮件服务器")
    smtp_port: int = Field(..., alias="smtpPort", ge=1, le=65535, description="邮件服务器端口")
    last_login_time: Optional[str] = Field(None, alias="lastLoginTime", description="最后登录时间 (RFC 3339)")

    @classmethod
    def from_account(cls, account: Account) -> "AccountModel":
        return cls(**account.to_dict())

    def to_account(self) -> Account:
        return Account(
            id=self.id,
            email=self.email,
            password=self.password,
            email_password=self.email_password,
            smtp_server=self.smtp_server,
            smtp_port=self.smtp_port,
            last_login_time=self.last_login_time,
        )


class BrowserSessionResponse(BaseModel):
    """浏览器会话记录"""

    model_config = ConfigDict(populate_by_name=True)

    account_id: str = Field(..., alias="accountId")
    cookies: Optional[str] = None
    local_storage: Optional[str] = Field(None, alias="localStorage")


@router.get("", response_model=List[AccountModel])
async def list_accounts() -> List[AccountModel]:
    """
    获取账号列表

    账号文件不存在时返回空列表。
    """
    return [AccountModel.from_account(a) for a in _get_store().list_accounts()]


@router.put("", response_model=AccountModel)
async def save_account(request: AccountModel) -> AccountModel:
    """
    保存账号

    ID 已存在则覆盖，否则新增，并写回 accounts.json。
    """
    _get_store().save_account(request.to_account())
    return request


@router.delete("/{account_id}")
async def delete_account(account_id: str):
    """
    删除账号
    """
    if not _get_store().delete_account(account_id):
        raise HTTPException(
            status_code=404,
            detail=f"Account {account_id} not found",
        )

    return {"message": f"Account {account_id} deleted successfully"}


@router.post("/{account_id}/last-login", response_model=AccountModel)
async def update_last_login(account_id: str) -> AccountModel:
    """
    更新最后登录时间为当前时间
    """
    store = _get_store()
    if not store.update_last_login(account_id):
        raise HTTPException(
            status_code=404,
            detail=f"Account {account_id} not found",
        )

    for account in store.list_accounts():
        if account.id == account_id:
            return AccountModel.from_account(account)

    # 并发删除
    raise HTTPException(status_code=404, detail=f"Account {account_id} not found")


@router.post("/{account_id}/session", response_model=BrowserSessionResponse)
async def save_browser_session(account_id: str) -> BrowserSessionResponse:
    """
    记录浏览器会话

    同一账号的旧会话会被替换。
    """
    session = _get_store().save_browser_session(account_id)
    logger.info(f"Saved browser session for {account_id}")
    return BrowserSessionResponse(**session.to_dict())
