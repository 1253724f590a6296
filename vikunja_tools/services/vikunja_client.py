"""Vikunja REST API client with async context manager support."""

from typing import Any, Optional, Protocol

import httpx

from vikunja_tools.models.project import Project
from vikunja_tools.models.relation import RelationKind
from vikunja_tools.models.task import Label, Task, TaskComment
from vikunja_tools.utils.config import VikunjaConfig
from vikunja_tools.utils.errors import VikunjaAPIError
from vikunja_tools.utils.logging import get_structured_logger, mask_token

logger = get_structured_logger(__name__)


class RemoteTaskService(Protocol):
    """Remote calls consumed by the workflows. Raw failures are unclassified."""

    async def get_task(self, task_id: int) -> Task: ...
    async def create_task(self, project_id: int, payload: dict[str, Any]) -> Task: ...
    async def update_task(self, task_id: int, payload: dict[str, Any]) -> Task: ...
    async def delete_task(self, task_id: int) -> None: ...
    async def set_task_labels(self, task_id: int, label_ids: list[int]) -> None: ...
    async def assign_users(self, task_id: int, user_ids: list[int]) -> None: ...
    async def unassign_user(self, task_id: int, user_id: int) -> None: ...
    async def create_task_relation(self, task_id: int, other_task_id: int, kind: RelationKind) -> None: ...
    async def delete_task_relation(self, task_id: int, kind: RelationKind, other_task_id: int) -> None: ...
    async def get_task_comments(self, task_id: int) -> list[TaskComment]: ...
    async def create_task_comment(self, task_id: int, comment: str) -> TaskComment: ...
    async def list_tasks(self, params: dict[str, Any]) -> list[Task]: ...
    async def list_project_tasks(self, project_id: int, params: dict[str, Any]) -> list[Task]: ...
    async def get_projects(self, params: Optional[dict[str, Any]] = None) -> list[Project]: ...
    async def get_project(self, project_id: int) -> Project: ...
    async def create_project(self, payload: dict[str, Any]) -> Project: ...
    async def update_project(self, project_id: int, payload: dict[str, Any]) -> Project: ...
    async def delete_project(self, project_id: int) -> None: ...
    async def get_labels(self, params: Optional[dict[str, Any]] = None) -> list[Label]: ...
    async def get_label(self, label_id: int) -> Label: ...
    async def create_label(self, payload: dict[str, Any]) -> Label: ...
    async def update_label(self, label_id: int, payload: dict[str, Any]) -> Label: ...
    async def delete_label(self, label_id: int) -> None: ...


class VikunjaClient:
    """Thin httpx wrapper over the Vikunja API.

    Non-2xx responses raise VikunjaAPIError; transport failures surface as
    httpx exceptions. Classification happens in the caller.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url, self._token = VikunjaConfig.require_connection(base_url, token)
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self._token}",
                "Accept": "application/json",
            },
            timeout=timeout if timeout is not None else VikunjaConfig.VIKUNJA_TIMEOUT_SECONDS,
            transport=transport,
        )
        logger.debug("Vikunja client initialized", base_url=self.base_url, token=mask_token(self._token))

    async def __aenter__(self) -> "VikunjaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        logger.debug("Vikunja request", method=method, path=path)
        response = await self._http.request(method, path, json=json, params=params or None)

        if response.is_error:
            message = response.reason_phrase or "request failed"
            error_code = None
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = body.get("message") or message
                error_code = body.get("code")
            logger.debug(
                "Vikunja request failed",
                method=method,
                path=path,
                status_code=response.status_code,
                remote_message=message,
            )
            raise VikunjaAPIError(response.status_code, message, error_code)

        if not response.content:
            return None
        return response.json()

    # Tasks

    async def get_task(self, task_id: int) -> Task:
        return Task.model_validate(await self._request("GET", f"/tasks/{task_id}"))

    async def create_task(self, project_id: int, payload: dict[str, Any]) -> Task:
        data = await self._request("PUT", f"/projects/{project_id}/tasks", json=payload)
        return Task.model_validate(data)

    async def update_task(self, task_id: int, payload: dict[str, Any]) -> Task:
        """Full-object replace: omitted fields are cleared remotely."""
        return Task.model_validate(await self._request("POST", f"/tasks/{task_id}", json=payload))

    async def delete_task(self, task_id: int) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")

    async def set_task_labels(self, task_id: int, label_ids: list[int]) -> None:
        await self._request(
            "POST",
            f"/tasks/{task_id}/labels/bulk",
            json={"labels": [{"id": label_id} for label_id in label_ids]},
        )

    async def assign_users(self, task_id: int, user_ids: list[int]) -> None:
        await self._request(
            "PUT",
            f"/tasks/{task_id}/assignees/bulk",
            json={"assignees": [{"id": user_id} for user_id in user_ids]},
        )

    async def unassign_user(self, task_id: int, user_id: int) -> None:
        await self._request("DELETE", f"/tasks/{task_id}/assignees/{user_id}")

    async def create_task_relation(self, task_id: int, other_task_id: int, kind: RelationKind) -> None:
        await self._request(
            "PUT",
            f"/tasks/{task_id}/relations",
            json={
                "task_id": task_id,
                "other_task_id": other_task_id,
                "relation_kind": RelationKind(kind).value,
            },
        )

    async def delete_task_relation(self, task_id: int, kind: RelationKind, other_task_id: int) -> None:
        await self._request("DELETE", f"/tasks/{task_id}/relations/{RelationKind(kind).value}/{other_task_id}")

    async def get_task_comments(self, task_id: int) -> list[TaskComment]:
        data = await self._request("GET", f"/tasks/{task_id}/comments")
        return [TaskComment.model_validate(item) for item in data or []]

    async def create_task_comment(self, task_id: int, comment: str) -> TaskComment:
        data = await self._request("PUT", f"/tasks/{task_id}/comments", json={"comment": comment})
        return TaskComment.model_validate(data)

    async def list_tasks(self, params: dict[str, Any]) -> list[Task]:
        data = await self._request("GET", "/tasks/all", params=params)
        return [Task.model_validate(item) for item in data or []]

    async def list_project_tasks(self, project_id: int, params: dict[str, Any]) -> list[Task]:
        data = await self._request("GET", f"/projects/{project_id}/tasks", params=params)
        return [Task.model_validate(item) for item in data or []]

    # Projects

    async def get_projects(self, params: Optional[dict[str, Any]] = None) -> list[Project]:
        data = await self._request("GET", "/projects", params=params)
        return [Project.model_validate(item) for item in data or []]

    async def get_project(self, project_id: int) -> Project:
        return Project.model_validate(await self._request("GET", f"/projects/{project_id}"))

    async def create_project(self, payload: dict[str, Any]) -> Project:
        return Project.model_validate(await self._request("PUT", "/projects", json=payload))

    async def update_project(self, project_id: int, payload: dict[str, Any]) -> Project:
        return Project.model_validate(await self._request("POST", f"/projects/{project_id}", json=payload))

    async def delete_project(self, project_id: int) -> None:
        await self._request("DELETE", f"/projects/{project_id}")

    # Labels

    async def get_labels(self, params: Optional[dict[str, Any]] = None) -> list[Label]:
        data = await self._request("GET", "/labels", params=params)
        return [Label.model_validate(item) for item in data or []]

    async def get_label(self, label_id: int) -> Label:
        return Label.model_validate(await self._request("GET", f"/labels/{label_id}"))

    async def create_label(self, payload: dict[str, Any]) -> Label:
        return Label.model_validate(await self._request("PUT", "/labels", json=payload))

    async def update_label(self, label_id: int, payload: dict[str, Any]) -> Label:
        return Label.model_validate(await self._request("POST", f"/labels/{label_id}", json=payload))

    async def delete_label(self, label_id: int) -> None:
        await self._request("DELETE", f"/labels/{label_id}")
