"""In-memory stand-in for the telemetry API used by the tests."""

import json

import httpx

API_BASE_URL = "http://api.test"

USERS = {
    "analyst@example.com": {"id": 3, "role": "user", "name": "Ana Lyst", "email": "analyst@example.com"},
    "admin@example.com": {"id": 7, "role": "admin", "name": "Ada Min", "email": "admin@example.com"},
}
PASSWORD = "correct-horse"
TOKENS = {"user-token": USERS["analyst@example.com"], "admin-token": USERS["admin@example.com"]}


def sample_data():
    alerts = [
        {"id": 1, "status": "open", "severity": "high", "alert_type": "malware",
         "alert_datetime": "2024-03-02T10:00:00Z", "detection_source": "EDR"},
        {"id": 2, "status": "resolved", "severity": "high", "alert_type": "phishing",
         "alert_datetime": "2024-03-01T09:00:00Z", "detection_source": "SIEM"},
        {"id": 3, "status": "unresolved", "severity": "low", "alert_type": "malware",
         "alert_datetime": "2024-03-02T23:00:00Z", "detection_source": None},
        {"id": 4, "status": "resolved", "severity": None, "alert_type": "scan",
         "alert_datetime": "not a date", "detection_source": "NDR"},
    ]
    return {
        "alerts": alerts,
        "ip_analysis": [
            {"ip_address": "10.0.0.1", "latitude": "51.5", "longitude": "-0.12", "city": "London",
             "country": "UK", "incident_count": 2},
            {"ip_address": "10.0.0.2", "latitude": "", "longitude": "2.35", "city": "Paris", "country": "FR"},
        ],
        "edr_alerts": [
            {"severity": "Critical", "detected_at": "2024-03-01T08:00:00Z"},
            {"severity": "Low", "detected_at": "2024-03-03T08:00:00Z"},
        ],
        "edr_endpoints": [{"status": "online", "os_type": "Windows"}, {"status": "offline", "os_type": "Linux"}],
        "edr_analyst_logs": [
            {"analyst_name": "kim", "action_type": "quarantine"},
            {"analyst_name": "kim", "action_type": None},
        ],
        "filelog": [
            {"fileName": "a.exe", "FileEvent": "created", "MLScan": 1, "isMalicious": 1, "fileSize": 1048576},
            {"filename": "b.dll", "action": "deleted", "MLScan": "1", "isMalicious": 0, "fileSize": 1048576},
            {"fileName": "c.txt", "FileEvent": "modified", "MLScan": 0, "isMalicious": 0, "fileSize": 10},
        ],
        "network_logs": [
            {"datetime": "2024-03-02T01:00:00Z", "source_ip": "10.0.0.1", "anomaly_type": "port_scan",
             "country": "UK"},
            {"datetime": "2024-03-01T01:00:00Z", "source_ip": "10.0.0.1", "anomaly_type": "NA", "country": "UK"},
            {"datetime": "2024-03-01T02:00:00Z", "source_ip": "10.0.0.9", "anomaly_type": "", "country": "FR"},
        ],
        "network_alerts_xdr": [
            {"type": "lateral", "severity": "high", "detected_at": "2024-03-01T00:00:00Z"},
        ],
        "incident": [
            {"status": "open", "priority": "P1", "incident_type": "intrusion"},
            {"status": "resolved", "priority": "P2", "incident_type": "intrusion"},
        ],
        "analyst_logs": [
            {"analyst_id": 1, "action_performed": "escalate", "response_time": 10},
            {"analyst_id": 2, "action_performed": None, "response_time": "20"},
            {"analyst_id": 1, "action_performed": "escalate", "response_time": "n/a"},
        ],
        "case_timeline_soar": [{"case": 1}],
        "collaboration_log_soar": [{"msg": "hi"}, {"msg": "there"}],
        "response_action_log_soar": [{"action_type": "block"}, {}],
        "threats_xdr": [
            {"threat_type": "ransomware", "status": "Open", "severity": "Critical"},
            {"threat_type": "worm", "status": "Closed", "severity": "Low"},
        ],
        "ti_feed_soar": [
            {"technique_name": "T1059", "indicator_type": "port_scan", "threat_level": "High"},
            {"technique_name": "T1059", "indicator_type": "ip", "threat_level": "Low"},
        ],
        "user_activity": [
            {"user_id": "u1", "activity_type": "login", "is_ip_blacklisted": "1", "publisher_verified": "0",
             "country": "UK", "latitude": 51.5, "longitude": -0.12},
            {"user_id": "u2", "activity_type": "install", "is_ip_blacklisted": "0", "publisher_verified": "1",
             "country": "US", "latitude": "abc", "longitude": 1},
        ],
        "cloud_alerts_xdr": [{"user_email": "x@example.com", "alert_type": "s3", "severity": "high"}],
        "endpoints_xdr": [{"os_type": "Windows"}],
        "USBLog": [
            {"macAddress": f"aa:bb:{i:02d}", "product_key": "pk", "UserName": "bob",
             "Total_FileScanned": 10, "Total_Virus_Found": i % 2, "Detection_Time": "t", "Removal_Time": "t"}
            for i in range(25)
        ],
        "ProcessLog1": [
            {"ProcessName": "chrome.exe", "processID": 1, "CPU": 12.3456, "Memory": 200.111,
             "MalwareFamily": None, "VirusType": None, "DateTimeP": "2024-03-02T10:00:00Z"},
            {"ProcessName": "evil.exe", "processID": 2, "CPU": 50.0, "Memory": 10.0,
             "MalwareFamily": "Emotet", "VirusType": "Trojan", "DateTimeP": "2024-03-01T10:00:00Z"},
            {"ProcessName": "Chromium", "processID": 3, "CPU": 1.0, "Memory": 300.0,
             "MalwareFamily": "", "VirusType": None, "DateTimeP": "2024-03-03T10:00:00Z"},
        ],
        "notifications": [
            {"id": 1, "title": "New alert", "message": "Malware found", "type": "alert", "read": False,
             "timestamp": "2024-03-02T10:00:00Z"},
            {"id": 2, "title": "Digest", "message": "Weekly digest", "type": "info", "read": True,
             "timestamp": "2024-03-01T10:00:00Z"},
        ],
        "users/all-users": [
            {"id": 3, "name": "Ana Lyst", "email": "analyst@example.com", "role": "user"},
            {"id": 7, "name": "Ada Min", "email": "admin@example.com", "role": "admin"},
            {"id": 12, "name": "Bob Stone", "email": "bob@corp.test", "role": "user"},
        ],
    }


class FakeApi:
    """In-memory stand-in for the telemetry API."""

    def __init__(self):
        self.data = sample_data()
        self.texts = {
            "threat_lists/blacklisted_ips": "1.2.3.4\n\nnot-an-ip\n 5.6.7.8 \n::1\n",
            "threat_lists/whitelisted_ips": "10.0.0.1\n300.1.1.1\n",
            "threat_lists/phishing_sites": "http://bad.test\nftp://nope.test\nhttps://worse.test\n",
        }
        self.failures: dict[str, int] = {}
        self.expired_tokens: set[str] = set()
        self.requests: list[httpx.Request] = []
        self.marked_read = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.lstrip("/")

        if path in self.failures:
            return httpx.Response(self.failures[path], json={"error": f"{path} unavailable"})

        if path == "login" and request.method == "POST":
            body = json.loads(request.content or b"{}")
            user = USERS.get(body.get("email"))
            if user is None or body.get("password") != PASSWORD:
                return httpx.Response(401, json={"error": "Invalid email or password"})
            token = "admin-token" if user["role"] == "admin" else "user-token"
            return httpx.Response(200, json={"token": token, "user": {"id": user["id"], "role": user["role"]}})

        auth = request.headers.get("Authorization", "")
        token = auth[len("Bearer "):] if auth.startswith("Bearer ") else None
        if token not in TOKENS or token in self.expired_tokens:
            return httpx.Response(401, json={"error": "invalid token"})

        if path == "notifications/mark_all_read" and request.method == "POST":
            self.marked_read += 1
            for n in self.data["notifications"]:
                n["read"] = True
            return httpx.Response(200, json={"ok": True})
        if path.startswith("users/") and path != "users/all-users":
            user_id = path.split("/", 1)[1]
            for user in USERS.values():
                if str(user["id"]) == user_id:
                    return httpx.Response(200, json=user)
            return httpx.Response(404, json={"error": "User not found"})
        if path in self.texts:
            return httpx.Response(200, text=self.texts[path])
        if path in self.data:
            return httpx.Response(200, json=self.data[path])
        return httpx.Response(404, json={"error": "not found"})

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


