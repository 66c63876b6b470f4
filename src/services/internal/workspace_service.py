import aiohttp
from typing import Optional
from pydantic import ValidationError

# Utils
from utils.log_utils import LogUtil

# Models
from models.response.workspace.workspace_info import WorkspaceInfo

class WorkspaceService:
    def __init__(self, log_util: LogUtil, workspace_service_url: str):
        self.remote_workspace_service = workspace_service_url.rstrip("/")
        self.log_util = log_util

    async def get_workspace_info(self, workspace_id: int) -> Optional[WorkspaceInfo]:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"{self.remote_workspace_service}/{workspace_id}") as response:
                    if response.status != 200:
                        self.log_util.warning(
                            service_name="WorkspaceService",
                            message=f"Workspace service returned {response.status} for workspace {workspace_id}"
                        )
                        return None
                    workspace_data = await response.json()
                    return WorkspaceInfo.model_validate(workspace_data)
        except aiohttp.ClientError as e:
            self.log_util.error(service_name="WorkspaceService", message=f"Error fetching workspace {workspace_id}: {str(e)}")
            return None
        except ValidationError as e:
            self.log_util.error(service_name="WorkspaceService", message=f"Invalid workspace data for workspace {workspace_id}: {str(e)}")
            return None
