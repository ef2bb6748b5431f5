import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from app.core.exceptions import OptiNexusException, ProcessingFailedException
from app.utils.redaction import get_safe_error_message

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


class BaseProcessor(ABC):
    """파일 처리기 추상 베이스 클래스"""

    @property
    @abstractmethod
    def kind(self) -> str:
        """처리 대상 종류 (예: 'pdf', 'image')"""
        pass

    async def _run(
        self,
        action: str,
        func: Callable[..., ResultT],
        *args: Any,
        **kwargs: Any,
    ) -> ResultT:
        """
        동기 처리 함수를 스레드에서 실행

        라이브러리 예외는 마스킹된 메시지의 ProcessingFailedException으로 변환합니다.
        (요청 오류로 판단된 OptiNexusException은 그대로 전달)
        """
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except OptiNexusException:
            raise
        except Exception as e:
            safe_message = get_safe_error_message(e)
            logger.error(f"{self.kind} {action} 처리 실패: {safe_message}")
            raise ProcessingFailedException(f"{self.kind} {action} 처리 중 오류 발생: {safe_message}")
