from beanie import Document, Indexed
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from costbook.models.line_item import OptionalMoney


class ClientBase(BaseModel):
    client_name: Indexed(str)
    company_name: Optional[str] = None
    email: Optional[Indexed(str)] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Client(Document, ClientBase):
    """
    Client model.
    Represents customers who own projects and receive estimates.
    """

    class Settings:
        name = "clients"

    async def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        await super().save(*args, **kwargs)


class ProjectBase(BaseModel):
    project_number: Indexed(str, unique=True)
    project_name: str
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    address: Optional[str] = None
    status: str = "estimating"

    # Contract figures used by the margin warnings
    contracted_amount: OptionalMoney = None
    original_est_costs: OptionalMoney = None
    adjusted_est_costs: OptionalMoney = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def display_name(self):
        """Return formatted project name."""
        return f"{self.project_number} - {self.project_name}"


class Project(Document, ProjectBase):
    """
    Project model.
    A job for a client; estimates, quotes, change orders and expenses hang
    off it by project_id.
    """

    class Settings:
        name = "projects"

    async def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        await super().save(*args, **kwargs)
