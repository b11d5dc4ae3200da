"""Exception hierarchy cho matching engine"""


class QuizMatcherError(Exception):
    """Base class cho mọi lỗi của engine"""


class ValidationError(QuizMatcherError):
    """Request không hợp lệ (threshold ngoài [0,1], batch rỗng...) - từ chối trước khi xử lý"""


class SearchIndexUnavailableError(QuizMatcherError):
    """Search index không truy cập được hoặc không tương thích version"""


class ItemProcessingError(QuizMatcherError):
    """Lỗi khi xử lý một câu hỏi trong batch"""

    def __init__(self, index: int, message: str):
        super().__init__(f"Question {index}: {message}")
        self.index = index
        self.message = message
