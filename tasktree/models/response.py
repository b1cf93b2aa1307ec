"""
Response models for API payloads
"""

from typing import Optional, List, Any
from pydantic import BaseModel, Field, ConfigDict
from tasktree.models.task import Task


class TaskStats(BaseModel):
    """Completion statistics for one owner"""
    
    model_config = ConfigDict(populate_by_name=True)
    
    total: int
    completed: int
    pending: int
    completion_rate: float = Field(alias="completionRate")


class TaskListSummary(BaseModel):
    """Bulk operation result carrying the caller's tasks"""
    message: str
    count: int
    tasks: List[Task]


class DeletedTasksSummary(BaseModel):
    """Result of deleting completed tasks"""
    
    model_config = ConfigDict(populate_by_name=True)
    
    message: str
    deleted_tasks: List[Task] = Field(alias="deletedTasks")


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str
    message: str
    details: Optional[Any] = None
