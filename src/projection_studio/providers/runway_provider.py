from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from projection_studio.assembly.preprocess import file_to_data_url
from projection_studio.config import settings
from projection_studio.errors import GenerationServiceError
from projection_studio.models import MediaFile, VideoSubType
from projection_studio.prompts import video_model_for

logger = logging.getLogger(__name__)


class RunwayProvider:
    """
    Image-to-video via the Runway task API: submit a task, then poll until it settles.
    """

    name = "runway"

    def __init__(self, api_key: str, client: httpx.AsyncClient | None = None) -> None:
        self.api_key = api_key
        self._client = client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "X-Runway-Version": settings.runway_api_version,
        }

    async def generate_video(
        self,
        prompt: str,
        video_sub_type: VideoSubType,
        duration: int,
        start_scene: MediaFile,
        end_scene: MediaFile | None = None,
    ) -> tuple[str, dict[str, Any]]:
        model = video_model_for(video_sub_type)
        prompt_images: list[dict[str, str]] = [{"uri": file_to_data_url(start_scene), "position": "first"}]
        if video_sub_type == VideoSubType.TRANSITION and end_scene is not None:
            prompt_images.append({"uri": file_to_data_url(end_scene), "position": "last"})

        body = {
            "model": model,
            "promptImage": prompt_images,
            "promptText": prompt[:1000],
            "duration": int(duration),
            "ratio": settings.runway_ratio,
        }
        debug_payload: dict[str, Any] = {
            "type": "RunwayML Video Generation",
            "request": {
                "model": model,
                "promptText": body["promptText"],
                "duration": body["duration"],
                "ratio": body["ratio"],
                "promptImageCount": len(prompt_images),
            },
        }

        client = self._client or httpx.AsyncClient(timeout=60.0)
        try:
            task_id = await self._submit(client, body)
            debug_payload["taskId"] = task_id
            video_url = await self._wait_for_output(client, task_id)
        finally:
            if self._client is None:
                await client.aclose()
        return video_url, debug_payload

    async def _submit(self, client: httpx.AsyncClient, body: dict[str, Any]) -> str:
        resp = await client.post(
            f"{settings.runway_base_url}/v1/image_to_video",
            json=body,
            headers=self._headers(),
        )
        if resp.status_code >= 400:
            raise GenerationServiceError(f"Runway request failed with status {resp.status_code}: {resp.text}")
        task_id = (resp.json() or {}).get("id")
        if not task_id:
            raise GenerationServiceError("Runway did not return a task id.")
        return str(task_id)

    async def _wait_for_output(self, client: httpx.AsyncClient, task_id: str) -> str:
        for _ in range(max(1, settings.runway_max_polls)):
            resp = await client.get(f"{settings.runway_base_url}/v1/tasks/{task_id}", headers=self._headers())
            if resp.status_code >= 400:
                raise GenerationServiceError(f"Runway task lookup failed with status {resp.status_code}: {resp.text}")
            task = resp.json() or {}
            status = task.get("status")
            if status == "SUCCEEDED":
                output = task.get("output") or []
                if not output:
                    raise GenerationServiceError("Runway task succeeded without an output URL.")
                return output[0]
            if status in ("FAILED", "CANCELLED"):
                reason = task.get("failure") or task.get("failureCode") or "unknown failure"
                raise GenerationServiceError(f"Runway task {status.lower()}: {reason}")
            logger.debug("runway task %s is %s", task_id, status)
            await asyncio.sleep(settings.runway_poll_interval)
        raise GenerationServiceError(f"Runway task {task_id} did not finish in time.")
