# backend/integrations/hubspot_client.py
# HubSpot CRM API 클라이언트

from typing import Any, Dict, List, Optional

import httpx


NOTE_TO_CONTACT_ASSOCIATION = 202


class HubSpotClient:
    """HubSpot CRM v3 클라이언트"""

    BASE_URL = "https://api.hubapi.com"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(timeout=30.0)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        response = await self.http_client.request(
            method,
            f"{self.base_url}{path}",
            headers=self._headers(),
            **kwargs
        )
        response.raise_for_status()
        if not response.content:
            return {}
        return response.json()

    async def get_contact(self, contact_id: str, properties: Optional[List[str]] = None) -> Dict[str, Any]:
        """연락처 조회"""
        params = {}
        if properties:
            params["properties"] = ",".join(properties)
        return await self._request("GET", f"/crm/v3/objects/contacts/{contact_id}", params=params)

    async def search_contact_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """이메일로 연락처 검색 (첫 결과)"""
        body = {
            "filterGroups": [
                {
                    "filters": [
                        {"propertyName": "email", "operator": "EQ", "value": email}
                    ]
                }
            ],
            "limit": 1
        }
        data = await self._request("POST", "/crm/v3/objects/contacts/search", json=body)
        results = data.get("results") or []
        return results[0] if results else None

    async def create_contact(self, properties: Dict[str, Any]) -> Dict[str, Any]:
        """연락처 생성"""
        return await self._request("POST", "/crm/v3/objects/contacts", json={"properties": properties})

    async def create_note(self, contact_id: str, body: str, timestamp_ms: int) -> Dict[str, Any]:
        """연락처에 노트 추가"""
        payload = {
            "properties": {
                "hs_note_body": body,
                "hs_timestamp": timestamp_ms
            },
            "associations": [
                {
                    "to": {"id": contact_id},
                    "types": [
                        {
                            "associationCategory": "HUBSPOT_DEFINED",
                            "associationTypeId": NOTE_TO_CONTACT_ASSOCIATION
                        }
                    ]
                }
            ]
        }
        return await self._request("POST", "/crm/v3/objects/notes", json=payload)

    async def ping(self) -> Dict[str, Any]:
        """연결 확인"""
        return await self._request("GET", "/crm/v3/objects/contacts", params={"limit": 1})

    async def close(self):
        await self.http_client.aclose()
