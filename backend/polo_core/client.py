from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Type

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from . import dto
from .errors import ApiError, DecodingError, InvalidURLError, NetworkError

if TYPE_CHECKING:  # pragma: no cover
    from .session import Session

logger = logging.getLogger(__name__)


class ListShape(str, Enum):
    BARE = "bare"  # [DTO, ...]
    PAGINATED = "paginated"  # {"data": [DTO, ...], "pagination": {...}}
    EITHER = "either"


@dataclass(frozen=True)
class Endpoint:
    kind: str
    path: str
    dto: Type[BaseModel]
    list_shape: ListShape = ListShape.EITHER

    def item_path(self, remote_id: int) -> str:
        return f"{self.path}/{int(remote_id)}"


ENDPOINTS: Dict[str, Endpoint] = {
    "tournament": Endpoint("tournament", "/tournaments", dto.TournamentDTO, ListShape.PAGINATED),
    "club": Endpoint("club", "/clubs", dto.ClubDTO),
    "team": Endpoint("team", "/teams", dto.TeamDTO, ListShape.PAGINATED),
    "player": Endpoint("player", "/players", dto.PlayerDTO, ListShape.PAGINATED),
    "horse": Endpoint("horse", "/horses", dto.HorseDTO, ListShape.PAGINATED),
    "breeder": Endpoint("breeder", "/breeders", dto.BreederDTO, ListShape.PAGINATED),
    "field": Endpoint("field", "/fields", dto.FieldDTO),
    "award": Endpoint("award", "/awards", dto.AwardDTO, ListShape.BARE),
    "match": Endpoint("match", "/matches", dto.MatchDTO, ListShape.BARE),
}


def endpoint_for(kind: str) -> Endpoint:
    try:
        return ENDPOINTS[kind]
    except KeyError as exc:
        raise ValueError(f"No remote endpoint for '{kind}' records") from exc


@lru_cache(maxsize=None)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or str(tp)


class ApiClient:
    """JSON REST client for the polo API.

    Every call is a single blocking request through ``httpx``; failures are
    classified into :mod:`polo_core.errors` types. A bearer token is attached
    whenever the bound session holds one.
    """

    def __init__(
        self,
        base_url: str | None = None,
        session: "Session | None" = None,
        transport: httpx.BaseTransport | None = None,
        list_shapes: Dict[str, ListShape] | None = None,
    ) -> None:
        if base_url is None:
            from .config import get_settings

            base_url = get_settings().api_base_url
        self.base_url = base_url.rstrip("/")
        self.session = session
        self._transport = transport
        self._endpoints = dict(ENDPOINTS)
        for kind, shape in (list_shapes or {}).items():
            self._endpoints[kind] = replace(endpoint_for(kind), list_shape=ListShape(shape))

    # ------------------------------------------------------------------
    # Core request

    def send(
        self,
        method: str,
        path: str,
        body: Any = None,
        response_model: Any = None,
        authenticated: bool = True,
    ) -> Tuple[int, Any]:
        """Issue one request and return ``(status_code, decoded_body)``.

        ``decoded_body`` is ``None`` when ``response_model`` is ``None``.
        """
        response = self._request(method, path, body, authenticated=authenticated)
        if response_model is None:
            return response.status_code, None
        return response.status_code, self._decode(response, response_model, f"{method} {path}")

    def _request(self, method: str, path: str, body: Any = None, authenticated: bool = True) -> httpx.Response:
        url = self._build_url(path)
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self.session.get_token() if (authenticated and self.session is not None) else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        payload = self._encode_body(body)
        logger.debug("API request %s %s", method, url)

        try:
            with httpx.Client(transport=self._transport) as client:
                response = client.request(method, url, json=payload, headers=headers)
        except httpx.InvalidURL as exc:
            raise InvalidURLError(f"Invalid URL: {url}") from exc
        except httpx.RequestError as exc:
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc

        logger.debug("API response %s %s -> %s", method, url, response.status_code)
        if not 200 <= response.status_code <= 299:
            raise self._api_error(response)
        return response

    # ------------------------------------------------------------------
    # Resource helpers

    def endpoint(self, kind: str) -> Endpoint:
        try:
            return self._endpoints[kind]
        except KeyError as exc:
            raise ValueError(f"No remote endpoint for '{kind}' records") from exc

    def get_list(self, path: str, item_model: Any, shape: ListShape = ListShape.EITHER) -> List[Any]:
        response = self._request("GET", path)
        raw = self._json(response, f"GET {path}")
        context = f"GET {path}"

        if shape is ListShape.EITHER:
            if isinstance(raw, list):
                shape = ListShape.BARE
            elif isinstance(raw, dict) and "data" in raw:
                shape = ListShape.PAGINATED
            else:
                raise DecodingError(f"{context}: expected a list or a paginated envelope, got {type(raw).__name__}")

        if shape is ListShape.PAGINATED:
            envelope = self._validate(raw, dto.PaginatedResponse[item_model], context)
            return list(envelope.data)
        return self._validate(raw, List[item_model], context)

    def list_records(self, kind: str) -> List[Any]:
        endpoint = self.endpoint(kind)
        return self.get_list(endpoint.path, endpoint.dto, endpoint.list_shape)

    def get_record(self, kind: str, remote_id: int) -> Any:
        endpoint = self.endpoint(kind)
        _, record = self.send("GET", endpoint.item_path(remote_id), response_model=endpoint.dto)
        return record

    def create_record(self, kind: str, body: BaseModel) -> Any:
        endpoint = self.endpoint(kind)
        _, record = self.send("POST", endpoint.path, body, response_model=endpoint.dto)
        return record

    def update_record(self, kind: str, remote_id: int, body: BaseModel) -> Any:
        endpoint = self.endpoint(kind)
        _, record = self.send("PUT", endpoint.item_path(remote_id), body, response_model=endpoint.dto)
        return record

    def delete_record(self, kind: str, remote_id: int) -> None:
        endpoint = self.endpoint(kind)
        self.send("DELETE", endpoint.item_path(remote_id))

    def list_matches_for_tournament(self, tournament_remote_id: int) -> List[dto.MatchDTO]:
        endpoint = self.endpoint("match")
        path = f"{endpoint.path}/tournament/{int(tournament_remote_id)}"
        return self.get_list(path, dto.MatchDTO, endpoint.list_shape)

    # ------------------------------------------------------------------
    # Internals

    def _build_url(self, path: str) -> str:
        if not path.startswith("/") or any(ch.isspace() for ch in path):
            raise InvalidURLError(f"Invalid API path: {path!r}")
        raw = self.base_url + path
        try:
            url = httpx.URL(raw)
        except httpx.InvalidURL as exc:
            raise InvalidURLError(f"Invalid URL: {raw}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidURLError(f"Invalid URL: {raw}")
        return raw

    @staticmethod
    def _encode_body(body: Any) -> Any:
        if body is None:
            return None
        if isinstance(body, BaseModel):
            return body.model_dump(mode="json", exclude_none=True)
        return body

    def _json(self, response: httpx.Response, context: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("%s: response body is not JSON (%s)", context, exc)
            raise DecodingError(f"{context}: response body is not valid JSON") from exc

    def _decode(self, response: httpx.Response, response_model: Any, context: str) -> Any:
        return self._validate(self._json(response, context), response_model, context)

    @staticmethod
    def _validate(raw: Any, response_model: Any, context: str) -> Any:
        try:
            return _adapter(response_model).validate_python(raw)
        except ValidationError as exc:
            errors = [
                {"loc": list(item.get("loc", ())), "type": item.get("type"), "msg": item.get("msg")}
                for item in exc.errors()
            ]
            for item in errors:
                logger.warning(
                    "Decoding %s failed for %s at %s: %s (%s)",
                    _type_name(response_model),
                    context,
                    ".".join(str(part) for part in item["loc"]) or "<root>",
                    item["msg"],
                    item["type"],
                )
            first = errors[0] if errors else {"loc": [], "msg": "invalid payload"}
            location = ".".join(str(part) for part in first["loc"]) or "<root>"
            raise DecodingError(
                f"{context}: could not decode {_type_name(response_model)} ({location}: {first['msg']})",
                errors,
            ) from exc

    @staticmethod
    def _api_error(response: httpx.Response) -> ApiError:
        status = response.status_code
        message: Optional[str] = None
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            try:
                message = dto.ErrorResponse.model_validate(payload).message
            except ValidationError:
                message = None

        if not message or not message.strip():
            message = f"Server returned status code {status}"
        logger.debug("API error %s: %s", status, message)
        return ApiError(status, message.strip())
