"""
API Response Envelopes
======================

Format standar {success, message, data} untuk semua endpoint.
"""

class APIResponse:
    """Standard API response format"""

    @staticmethod
    def success(data=None, message="Success"):
        return {
            "success": True,
            "message": message,
            "data": data
        }

    @staticmethod
    def error(message="Error", error_code=None, details=None, request_id=None):
        return {
            "success": False,
            "message": message,
            "error_code": error_code,
            "details": details or None,
            "request_id": request_id
        }

    @staticmethod
    def paginated(data, total, page, per_page, message="Success"):
        return {
            "success": True,
            "message": message,
            "data": data,
            "pagination": {
                "total": total,
                "page": page,
                "per_page": per_page,
                "total_pages": (total + per_page - 1) // per_page if total else 0
            }
        }
