"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Union
from datetime import datetime


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[Dict[str, Any]] = None


# ---- Menu ----
class MenuCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=100)
    path: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int = 0
    is_active: bool = True
    description: Optional[str] = None

class MenuUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    path: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None
    description: Optional[str] = None

class MenuOut(BaseModel):
    id: int
    name: str
    display_name: str
    path: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int = 0
    is_active: bool = True
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class MenuTreeOut(MenuOut):
    children: List["MenuTreeOut"] = []

MenuTreeOut.model_rebuild()


# ---- Button permission ----
class ButtonCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    identifier: str = Field(..., min_length=1, max_length=255)
    menu_id: int
    description: Optional[str] = None
    is_active: bool = True

class ButtonUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    identifier: Optional[str] = Field(None, min_length=1, max_length=255)
    menu_id: Optional[int] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

class ButtonOut(BaseModel):
    id: int
    name: str
    identifier: str
    description: Optional[str] = None
    menu_id: int
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Role ----
class RoleOut(BaseModel):
    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    menu_permissions: int = 0
    button_permissions: int = 0

    class Config:
        from_attributes = True

class RoleUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None

class RoleMenusUpdate(BaseModel):
    menu_ids: List[int] = []


# ---- User permissions ----
class ProjectOut(BaseModel):
    id: int
    name: str
    is_active: bool = True

    class Config:
        from_attributes = True

class UserPermissionOut(BaseModel):
    id: int
    email: str
    full_name: str
    role: Optional[str] = None
    is_active: bool = True
    project_ids: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

class UserPermissionUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1)
    role: Optional[str] = None
    is_active: Optional[bool] = None
    # "*", "1,2" or [1, 2]
    project_ids: Optional[Union[str, List[Union[int, str]]]] = None

class UserBatchUpdate(BaseModel):
    user_ids: List[int] = Field(..., min_length=1)
    role: Optional[str] = None
    is_active: Optional[bool] = None
    project_ids: Optional[Union[str, List[Union[int, str]]]] = None


# ---- Navigation ----
class PermissionCheckRequest(BaseModel):
    identifiers: List[str] = Field(..., min_length=1)


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    description: Optional[str] = None
    before_data: Optional[str] = None
    after_data: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    success: bool = True
