# jmt/utils/datetime_utils.py
"""
프로젝트 전체에서 일관된 시간/날짜 처리를 위한 유틸리티 모듈

1. 모든 시각은 UTC timezone-aware datetime으로 통일
2. Firestore 저장/읽기 변환
3. ISO 포맷 파싱/생성
4. 피드에 표시되는 상대 시간("3분 전") 포맷
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """시간/날짜 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 UTC datetime 객체로 파싱

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00
        """
        try:
            if not iso_string:
                raise ValueError("빈 문자열은 파싱할 수 없습니다")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.astimezone(timezone.utc)

        except Exception as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Firestore 저장을 위해 datetime 필드를 UTC aware 값으로 맞춥니다.
        dict/list 내부는 재귀적으로 변환합니다.
        """
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        elif isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

    @staticmethod
    def from_firestore(obj: Any) -> Any:
        """
        Firestore에서 읽은 데이터의 timestamp를 UTC datetime으로 변환합니다.
        변환 실패 시 원본 객체를 그대로 반환합니다 (로그만 남김).
        """
        try:
            if isinstance(obj, datetime):
                if obj.tzinfo is None:
                    return obj.replace(tzinfo=timezone.utc)
                return obj.astimezone(timezone.utc)
            elif hasattr(obj, 'timestamp') and callable(obj.timestamp):
                return datetime.fromtimestamp(obj.timestamp(), tz=timezone.utc)
            elif isinstance(obj, dict):
                return {k: DateTimeUtils.from_firestore(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [DateTimeUtils.from_firestore(item) for item in obj]
            return obj
        except Exception as e:
            logger.error(f"Firestore 읽기 변환 실패: {obj} ({type(obj)}) - {e}")
            return obj

    @staticmethod
    def to_datetime(value: Any) -> datetime:
        """문서의 시각 필드 하나를 UTC datetime으로 읽습니다. 웹 클라이언트가 남긴 ISO 문자열도 받습니다."""
        if isinstance(value, str):
            return DateTimeUtils.parse_iso_datetime(value)
        return DateTimeUtils.from_firestore(value)

    @staticmethod
    def to_timestamp_ms(dt: datetime) -> int:
        """datetime 객체를 Unix timestamp (밀리초)로 변환"""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)

    @staticmethod
    def format_relative(dt: datetime, reference: Optional[datetime] = None) -> str:
        """
        피드 카드에 표시할 상대 시간 문자열을 만듭니다.

        - 1분 미만: '방금 전'
        - 1시간 미만: 'N분 전'
        - 하루 미만: 'N시간 전'
        - 7일 미만: 'N일 전'
        - 그 외: 'YYYY년 M월 D일'
        """
        reference = reference or DateTimeUtils.now()
        dt = DateTimeUtils.from_firestore(dt)
        diff_seconds = (reference - dt).total_seconds()
        minutes = int(diff_seconds // 60)
        hours = int(diff_seconds // 3600)
        days = int(diff_seconds // 86400)

        if minutes < 1:
            return '방금 전'
        if minutes < 60:
            return f'{minutes}분 전'
        if hours < 24:
            return f'{hours}시간 전'
        if days < 7:
            return f'{days}일 전'
        return f'{dt.year}년 {dt.month}월 {dt.day}일'

