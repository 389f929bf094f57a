class ServiceError(Exception):
    pass


class InvalidInput(ServiceError):
    """호출자 계약 위반 (4xx)"""


class StorageError(ServiceError):
    """저장소 실패 (5xx). 메시지는 고정 문구, 원문은 감사 로그에만 남긴다."""
