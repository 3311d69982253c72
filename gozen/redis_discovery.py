"""Discovery of redis cluster addresses from a configuration service."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from gozen.crypto import aes_cbc_decrypt_base64, md5_hex_lower
from gozen.curl import curl_get, curl_post

_logger = logging.getLogger("gozen.api")

_ACCEPT_HEADERS = ["Accept:"]
_JSON_HEADERS = ["Content-Type:application/json"]
HEARTBEAT_TIMEOUT = timedelta(seconds=10)

EVENT_NONE = "0"
EVENT_CLUSTER_SWITCH = "1"


class RedisDiscoveryError(Exception):
    """The discovery service could not be reached or answered badly."""


@dataclass
class ClusterInfo:
    """Locally kept description of one redis cluster."""

    app_code: str = ""
    bid: str = ""
    cluster_info: str = ""
    cluster_name: str = ""
    cluster_password: str = ""
    is_cluster: bool = False
    need_auth: bool = False
    address: list[str] = field(default_factory=list)

    @property
    def address_len(self) -> int:
        return len(self.address)


@dataclass
class HeartbeatClusterInfo:
    """Per-cluster entry of a heartbeat report."""

    bid: str
    exec_count: int = 0
    cluster_info: str = ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"bid": self.bid, "execCount": self.exec_count}
        if self.cluster_info:
            result["clusterInfo"] = self.cluster_info
        return result


@dataclass
class HeartbeatInfo:
    """Heartbeat report sent to the discovery service."""

    app_code: str
    cluster_infos: list[HeartbeatClusterInfo] = field(default_factory=list)
    lang: str = ""
    client_ip: str = ""
    client_port: str = ""
    client_version: str = ""

    def to_json(self) -> str:
        """Compact JSON body; empty optional fields are left out."""
        payload: dict[str, Any] = {}
        if self.lang:
            payload["lang"] = self.lang
        payload["appCode"] = self.app_code
        if self.client_ip:
            payload["clientIp"] = self.client_ip
        if self.client_port:
            payload["clientPort"] = self.client_port
        if self.client_version:
            payload["clientVersion"] = self.client_version
        payload["clusterInfos"] = [info.to_dict() for info in self.cluster_infos]
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _load_object(raw: bytes, url: str, what: str) -> dict[str, Any]:
    try:
        data = json.loads(raw)
    except ValueError as exc:
        _logger.error("%s json decode error url=%s err=%s res=%r", what, url, exc, raw)
        raise RedisDiscoveryError(f"{what}: invalid JSON response") from exc
    if not isinstance(data, dict):
        _logger.error("%s unexpected response url=%s res=%r", what, url, raw)
        raise RedisDiscoveryError(f"{what}: response is not a JSON object")
    return data


def _content(data: dict[str, Any]) -> dict[str, Any]:
    content = data.get("content")
    return content if isinstance(content, dict) else {}


def _fetch(url: str, what: str) -> bytes:
    try:
        return curl_get(url, _ACCEPT_HEADERS, None)
    except OSError as exc:
        _logger.error("%s request error url=%s err=%s", what, url, exc)
        raise


def get_dynamic_redis_address(url: str) -> list[str]:
    """Fetch the list of redis addresses; empty when the service reports failure."""
    what = "get_dynamic_redis_address"
    data = _load_object(_fetch(url, what), url, what)
    if data.get("success") is True:
        return [str(item) for item in _content(data).get("result") or []]
    _logger.error("%s res error url=%s res=%r", what, url, data)
    return []


def get_no_proxy_redis_address(url: str, app_code: str, bid: str, iv: str) -> ClusterInfo:
    """Fetch and decrypt the cluster description for ``app_code`` and ``bid``."""
    what = "get_no_proxy_redis_address"
    request_url = f"{url}?bid={bid}&appCode={app_code}"
    data = _load_object(_fetch(request_url, what), request_url, what)
    if data.get("success") is not True:
        _logger.error("%s res error url=%s res=%r", what, request_url, data)
        raise RedisDiscoveryError(f"{what} res fail")
    origin = str(_content(data).get("clusterInfo") or "")
    try:
        return decode_cluster_info(app_code, bid, iv, origin)
    except RedisDiscoveryError:
        _logger.error("%s decode error url=%s", what, request_url)
        raise


def send_no_proxy_redis_heart(
    url: str, app_code: str, bid: str, iv: str, info: HeartbeatInfo
) -> tuple[bool, ClusterInfo | None]:
    """Report a heartbeat; returns ``(True, new_info)`` when ``bid`` switched cluster."""
    what = "send_no_proxy_redis_heart"
    body = info.to_json()
    _logger.debug("%s report %s", what, body)
    try:
        raw = curl_post(url, _JSON_HEADERS, body, HEARTBEAT_TIMEOUT)
    except OSError as exc:
        _logger.error("%s request error url=%s err=%s", what, url, exc)
        raise
    data = _load_object(raw, url, what)
    _logger.debug("%s result %r", what, raw)
    if data.get("success") is not True:
        _logger.error("%s res error url=%s res=%r", what, url, data)
        raise RedisDiscoveryError(f"{what} res fail")
    content = _content(data)
    if content.get("eventType") == EVENT_CLUSTER_SWITCH:
        for entry in content.get("newClusterInfos") or []:
            if isinstance(entry, dict) and entry.get("bid") == bid:
                origin = str(entry.get("clusterInfo") or "")
                return True, decode_cluster_info(app_code, bid, iv, origin)
    return False, None


def decode_cluster_info(app_code: str, bid: str, iv: str, origin: str) -> ClusterInfo:
    """Decrypt ``origin`` with a key derived from ``app_code`` and ``bid``."""
    key = md5_hex_lower(f"{app_code}:{bid}")
    try:
        plain = aes_cbc_decrypt_base64(key, iv, origin)
    except ValueError as exc:
        _logger.error("decode_cluster_info decrypt error err=%s", exc)
        raise RedisDiscoveryError("cannot decrypt cluster info") from exc
    try:
        raw = json.loads(plain)
    except ValueError as exc:
        _logger.error("decode_cluster_info json error err=%s", exc)
        raise RedisDiscoveryError("cluster info is not valid JSON") from exc
    if not isinstance(raw, dict):
        raise RedisDiscoveryError("cluster info is not a JSON object")
    node_list = str(raw.get("nodeList") or "")
    return ClusterInfo(
        app_code=app_code,
        bid=bid,
        cluster_info=origin,
        cluster_name=str(raw.get("clusterName") or ""),
        cluster_password=str(raw.get("clusterPassWord") or ""),
        is_cluster=(raw.get("clusterProtocol") or 0) == 0,
        need_auth=(raw.get("needAuth") or 0) == 1,
        address=node_list.split(","),
    )