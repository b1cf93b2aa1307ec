"""
Task model
"""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


class Task(BaseModel):
    """Task model"""
    
    model_config = ConfigDict(populate_by_name=True)
    
    id: int
    owner_id: str = Field(alias="ownerId")
    title: str
    description: str = ""
    details: str = ""
    done: bool = False
    parent_id: Optional[int] = Field(None, alias="parentId")
    order: int = 0
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class TaskNode(Task):
    """Task with its subtasks nested, as returned by the tree view"""
    
    subtasks: List["TaskNode"] = Field(default_factory=list)


class TaskCreate(BaseModel):
    """Task creation model"""
    
    model_config = ConfigDict(populate_by_name=True)
    
    title: str
    description: str = ""
    details: str = ""
    parent_id: Optional[int] = Field(None, alias="parentId", ge=1)
    order: Optional[int] = Field(None, ge=0)


class SubtaskCreate(BaseModel):
    """Subtask creation model (parent comes from the path)"""
    
    title: str
    description: str = ""
    details: str = ""


class TaskBulkCreate(BaseModel):
    """Bulk creation model"""
    
    tasks: List[str]


class TaskUpdate(BaseModel):
    """
    Task update model
    
    Only fields present in the payload are applied (see ``model_fields_set``).
    An explicit ``parentId: null`` moves the task to the root, an absent one
    leaves the parent unchanged.
    """
    
    model_config = ConfigDict(populate_by_name=True)
    
    title: Optional[str] = None
    description: Optional[str] = None
    details: Optional[str] = None
    done: Optional[bool] = None
    parent_id: Optional[int] = Field(None, alias="parentId", ge=1)
    order: Optional[int] = Field(None, ge=0)


class TaskMove(BaseModel):
    """Move model; same absent/null distinction as TaskUpdate for the parent"""
    
    model_config = ConfigDict(populate_by_name=True)
    
    new_parent_id: Optional[int] = Field(None, alias="newParentId", ge=1)
    new_order: Optional[int] = Field(None, alias="newOrder", ge=0)


class TaskReorder(BaseModel):
    """Reorder model: full id sequence of one sibling group"""
    
    model_config = ConfigDict(populate_by_name=True)
    
    parent_id: Optional[int] = Field(None, alias="parentId", ge=1)
    order: List[int]
