import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from gozen.crypto import aes_cbc_encrypt, md5_hex_lower
from gozen.redis_discovery import (
    ClusterInfo,
    HeartbeatClusterInfo,
    HeartbeatInfo,
    RedisDiscoveryError,
    decode_cluster_info,
    get_dynamic_redis_address,
    get_no_proxy_redis_address,
    send_no_proxy_redis_heart,
)
import base64

APP = "app"
BID = "b1"
IV = "c558Gq0YQK2QUlMc"


def _encrypt(payload, app=APP, bid=BID):
    key = md5_hex_lower(f"{app}:{bid}")
    raw = aes_cbc_encrypt(key, IV, json.dumps(payload).encode("utf-8"))
    return base64.b64encode(raw).decode("ascii")


CLUSTER = {
    "clusterName": "platform",
    "clusterPassWord": "password",
    "clusterProtocol": 0,
    "needAuth": 1,
    "nodeList": "127.0.0.1:8001,127.0.0.1:8101",
}


@pytest.fixture
def server(monkeypatch):
    monkeypatch.setenv("NO_PROXY", "*")
    monkeypatch.setenv("no_proxy", "*")
    state = {"responses": {}, "requests": []}

    class Handler(BaseHTTPRequestHandler):
        def _answer(self):
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            state["requests"].append((self.command, self.path, dict(self.headers), body))
            path = self.path.split("?", 1)[0]
            reply = state["responses"].get(path, b"{}")
            self.send_response(200)
            self.send_header("Content-Length", str(len(reply)))
            self.end_headers()
            self.wfile.write(reply)

        do_GET = _answer
        do_POST = _answer

        def log_message(self, *args):
            pass

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    state["base"] = f"http://127.0.0.1:{httpd.server_address[1]}"
    yield state
    httpd.shutdown()
    httpd.server_close()


def _respond(server, path, payload):
    server["responses"][path] = json.dumps(payload).encode("utf-8")


def test_dynamic_address_success(server):
    addresses = ["10.0.0.1:6379", "10.0.0.2:6379"]
    _respond(server, "/dyn", {"success": True, "content": {"result": addresses}})
    assert get_dynamic_redis_address(server["base"] + "/dyn") == addresses
    assert server["requests"][0][0] == "GET"


def test_dynamic_address_failure_returns_empty(server):
    _respond(server, "/dyn", {"success": False, "code": "500", "msg": "fail"})
    assert get_dynamic_redis_address(server["base"] + "/dyn") == []


def test_dynamic_address_invalid_json(server):
    server["responses"]["/dyn"] = b"not json"
    with pytest.raises(RedisDiscoveryError):
        get_dynamic_redis_address(server["base"] + "/dyn")


def test_no_proxy_address(server):
    origin = _encrypt(CLUSTER)
    _respond(server, "/np", {"success": True, "content": {"bid": BID, "clusterInfo": origin}})
    info = get_no_proxy_redis_address(server["base"] + "/np", APP, BID, IV)
    assert info.app_code == APP
    assert info.bid == BID
    assert info.cluster_info == origin
    assert info.cluster_name == "platform"
    assert info.cluster_password == "password"
    assert info.is_cluster is True
    assert info.need_auth is True
    assert info.address == ["127.0.0.1:8001", "127.0.0.1:8101"]
    assert info.address_len == 2
    assert server["requests"][0][1] == f"/np?bid={BID}&appCode={APP}"


def test_no_proxy_address_failure(server):
    _respond(server, "/np", {"success": False})
    with pytest.raises(RedisDiscoveryError):
        get_no_proxy_redis_address(server["base"] + "/np", APP, BID, IV)


def test_decode_cluster_info_master_slave_without_auth():
    payload = {"clusterName": "ms", "clusterPassWord": None, "clusterProtocol": 1,
               "needAuth": 0, "nodeList": "127.0.0.1:8001"}
    info = decode_cluster_info(APP, BID, IV, _encrypt(payload))
    assert info.is_cluster is False
    assert info.need_auth is False
    assert info.cluster_password == ""
    assert info.address == ["127.0.0.1:8001"]


def test_decode_cluster_info_wrong_key():
    origin = _encrypt(CLUSTER, app="other")
    with pytest.raises(RedisDiscoveryError):
        decode_cluster_info(APP, BID, IV, origin)


def test_decode_cluster_info_bad_base64():
    with pytest.raises(RedisDiscoveryError):
        decode_cluster_info(APP, BID, IV, "***")


def test_heartbeat_json_omits_empty_fields():
    info = HeartbeatInfo(app_code=APP, cluster_infos=[HeartbeatClusterInfo(bid=BID, exec_count=3)])
    decoded = json.loads(info.to_json())
    assert decoded == {"appCode": APP, "clusterInfos": [{"bid": BID, "execCount": 3}]}


def test_heartbeat_json_keeps_filled_fields():
    info = HeartbeatInfo(app_code=APP, lang="python", client_ip="127.0.0.1",
                         cluster_infos=[HeartbeatClusterInfo(bid=BID, cluster_info="x")])
    decoded = json.loads(info.to_json())
    assert list(decoded) == ["lang", "appCode", "clientIp", "clusterInfos"]
    assert decoded["clusterInfos"][0]["clusterInfo"] == "x"


def test_heart_without_event(server):
    _respond(server, "/hb", {"success": True, "content": {"eventType": "0"}})
    info = HeartbeatInfo(app_code=APP, cluster_infos=[HeartbeatClusterInfo(bid=BID)])
    assert send_no_proxy_redis_heart(server["base"] + "/hb", APP, BID, IV, info) == (False, None)
    method, _, headers, body = server["requests"][0]
    assert method == "POST"
    assert body.decode("utf-8") == info.to_json()
    assert headers["Content-Type"] == "application/json"


def test_heart_with_cluster_switch(server):
    origin = _encrypt(CLUSTER)
    _respond(server, "/hb", {"success": True, "content": {
        "eventType": "1",
        "newClusterInfos": [{"bid": "other", "clusterInfo": "x"},
                            {"bid": BID, "clusterInfo": origin}],
    }})
    is_new, new_info = send_no_proxy_redis_heart(
        server["base"] + "/hb", APP, BID, IV, HeartbeatInfo(app_code=APP))
    assert is_new is True
    assert isinstance(new_info, ClusterInfo)
    assert new_info.cluster_info == origin
    assert new_info.bid == BID


def test_heart_switch_for_other_bid(server):
    _respond(server, "/hb", {"success": True, "content": {
        "eventType": "1", "newClusterInfos": [{"bid": "other", "clusterInfo": "x"}]}})
    result = send_no_proxy_redis_heart(server["base"] + "/hb", APP, BID, IV, HeartbeatInfo(app_code=APP))
    assert result == (False, None)


def test_heart_failure(server):
    _respond(server, "/hb", {"success": False})
    with pytest.raises(RedisDiscoveryError):
        send_no_proxy_redis_heart(server["base"] + "/hb", APP, BID, IV, HeartbeatInfo(app_code=APP))