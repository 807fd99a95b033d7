import http.client
import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, Optional

from exam_client.paper import ExamPaper


logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5000/api"


class ApiError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, server_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        # Only set when the server said something itself.
        self.server_message = server_message


class ExamApiClient:
    def __init__(self, base_url: Optional[str] = None, timeout: float = 10.0):
        self.base_url = (base_url or os.getenv("PLACEMENT_API_URL") or DEFAULT_API_URL).rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(url, data=data, method=method)
        req.add_header("Accept", "application/json")
        if data is not None:
            req.add_header("Content-Type", "application/json")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            try:
                server_message = json.loads(e.read().decode("utf-8")).get("message")
            except (ValueError, AttributeError, OSError, http.client.HTTPException):
                server_message = None
            logger.warning("%s %s failed with HTTP %s: %s", method, url, e.code, server_message)
            raise ApiError(server_message or f"HTTP {e.code}", status=e.code, server_message=server_message) from None
        except (urllib.error.URLError, OSError) as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise ApiError(f"Could not reach server: {getattr(e, 'reason', e)}") from None
        except http.client.HTTPException as e:
            logger.warning("%s %s broke off mid-response: %r", method, url, e)
            raise ApiError("Connection to server was interrupted") from None
        except UnicodeDecodeError:
            raise ApiError("Invalid response from server") from None

        try:
            body = json.loads(raw) if raw else {}
        except ValueError:
            raise ApiError("Invalid response from server") from None
        if not isinstance(body, dict):
            raise ApiError("Invalid response from server")
        return body

    def get_exam_by_code(self, exam_code: str) -> ExamPaper:
        body = self._request("GET", f"/exams/code/{urllib.parse.quote(exam_code.strip())}")
        return ExamPaper.from_api(body["data"])

    def has_submitted(self, exam_id: int, usn: str) -> bool:
        body = self._request("GET", f"/exams/{exam_id}/check-submission/{urllib.parse.quote(usn.strip())}")
        return bool(body.get("hasSubmitted"))

    def submit_quiz(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = self._request("POST", "/exams/submit-quiz", payload)
        data = body.get("data")
        if not isinstance(data, dict) or "score" not in data or "totalQuestions" not in data:
            raise ApiError("Invalid response from server")
        return data
