from fastapi import HTTPException, status


class OptiNexusException(HTTPException):
    """OptiNexus 기본 예외"""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "서버 오류가 발생했습니다",
    ):
        super().__init__(status_code=status_code, detail=detail)


class InvalidRequestException(OptiNexusException):
    """잘못된 요청 파라미터 예외"""

    def __init__(self, message: str = "잘못된 요청입니다"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
        )


class UnauthorizedException(OptiNexusException):
    """인증 실패 예외"""

    def __init__(self, message: str = "인증에 실패했습니다"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=message,
        )


class FileTooLargeException(OptiNexusException):
    """파일 크기 초과 예외"""

    def __init__(self, max_size_mb: int):
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"파일 크기가 {max_size_mb}MB를 초과합니다",
        )


class InvalidFileTypeException(OptiNexusException):
    """잘못된 파일 타입 예외"""

    def __init__(self, expected_type: str, action: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{expected_type} 파일만 처리할 수 있습니다 (작업: {action})",
        )


class SourceFetchException(OptiNexusException):
    """원본 파일 다운로드 실패 예외 (클라이언트 요청 오류)"""

    def __init__(self, message: str = "원본 파일을 가져오지 못했습니다"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
        )


class StoredFileNotFoundException(OptiNexusException):
    """저장된 파일을 찾을 수 없음 예외"""

    def __init__(self, key: str | None = None):
        detail = "파일을 찾을 수 없습니다"
        if key:
            detail = f"파일을 찾을 수 없습니다: {key}"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class ProcessingFailedException(OptiNexusException):
    """파일 처리(라이브러리) 실패 예외"""

    def __init__(self, message: str = "파일 처리에 실패했습니다"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=message,
        )


class ServiceNotConfiguredException(OptiNexusException):
    """외부 서비스 미설정 예외"""

    def __init__(self, service: str, env_name: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{service}가 설정되지 않았습니다. {env_name} 환경 변수를 확인하세요.",
        )


class ConversionServiceException(OptiNexusException):
    """외부 변환 서비스 오류 예외"""

    def __init__(self, message: str = "문서 변환에 실패했습니다"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=message,
        )


class QuotaExceededException(OptiNexusException):
    """외부 변환 서비스 사용량 한도 초과 예외"""

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="무료 변환 한도에 도달했습니다",
        )


class ConversionTimeoutException(OptiNexusException):
    """외부 변환 작업 대기 시간 초과 예외"""

    def __init__(self, timeout_seconds: float):
        super().__init__(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"변환 작업이 {int(timeout_seconds)}초 내에 완료되지 않았습니다",
        )
