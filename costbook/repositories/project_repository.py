from typing import Optional, List
import logging

from beanie import PydanticObjectId

from costbook.core.database import database_write
from costbook.models.customer import Client, Project

logger = logging.getLogger(__name__)


class ClientRepository:
    """Repository for clients (MongoDB/Beanie)."""

    @database_write("Client insert")
    async def create_client(self, data: dict) -> Client:
        client = Client(**data)
        await client.insert()
        return client

    async def get_by_id(self, client_id: str) -> Optional[Client]:
        if not PydanticObjectId.is_valid(client_id):
            return None
        return await Client.get(PydanticObjectId(client_id))

    async def list_clients(self, active_only: bool = True) -> List[Client]:
        query = Client.find_all()
        if active_only:
            query = query.find(Client.is_active == True)  # noqa: E712
        return await query.sort("+client_name").to_list()


class ProjectRepository:
    """Repository for projects (MongoDB/Beanie)."""

    @database_write("Project insert")
    async def create_project(self, data: dict) -> Project:
        project = Project(**data)
        await project.insert()
        logger.info("Created project %s", project.project_number)
        return project

    async def get_by_id(self, project_id: str) -> Optional[Project]:
        if not PydanticObjectId.is_valid(project_id):
            return None
        return await Project.get(PydanticObjectId(project_id))

    async def get_by_number(self, project_number: str) -> Optional[Project]:
        return await Project.find_one(Project.project_number == project_number)

    async def list_projects(self, client_id: Optional[str] = None) -> List[Project]:
        query = Project.find_all()
        if client_id:
            query = query.find(Project.client_id == client_id)
        return await query.sort("-created_at").to_list()

    async def get_many(self, project_ids: List[str]) -> List[Project]:
        ids = [PydanticObjectId(pid) for pid in project_ids if PydanticObjectId.is_valid(pid)]
        if not ids:
            return []
        return await Project.find({"_id": {"$in": ids}}).to_list()
