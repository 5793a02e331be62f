from typing import Any, Dict, Optional


def api_success(data: Any, message: Optional[str] = None) -> Dict[str, Any]:
	envelope: Dict[str, Any] = {"success": True, "data": data, "error": None}
	if message is not None:
		envelope["message"] = message
	return envelope


def api_error(code: str, message: str, details: Optional[Any] = None) -> Dict[str, Any]:
	error: Dict[str, Any] = {"code": code, "message": message}
	if details is not None:
		error["details"] = details
	return {"success": False, "data": None, "error": error}
