# jmt/services/storage_service.py
import logging
from flask import Flask
from firebase_admin import storage


class StorageService:
    """
    Firebase Storage 관련 로직을 담당하는 범용 서비스 클래스입니다.
    경로 기반으로 바이너리를 업로드하고, 공개 URL을 발급합니다.
    """

    def __init__(self):
        """
        실제 버킷 객체는 init_app 메서드를 통해 주입됩니다.
        """
        self.bucket = None

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET 설정이 .env 또는 설정 파일에 필요합니다.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    def _require_bucket(self):
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")
        return self.bucket

    def upload(self, path: str, data: bytes, content_type: str = 'application/octet-stream') -> None:
        """
        지정한 경로에 바이트를 업로드합니다.

        :param path: 버킷 내 저장 경로 (예: "memories/1700000000000_photo.jpg")
        :param data: 업로드할 파일 내용
        :param content_type: 파일의 MIME 타입
        """
        blob = self._require_bucket().blob(path)
        blob.upload_from_string(data, content_type=content_type)
        logging.info(f"Storage 업로드 완료: {path} ({len(data)} bytes)")

    def get_public_url(self, path: str) -> str:
        """
        업로드된 파일을 공개(public)로 전환하고 해당 URL을 반환합니다.

        :param path: 공개로 전환할 파일의 경로
        :return: 공개적으로 접근 가능한 URL
        """
        blob = self._require_bucket().blob(path)

        if not blob.exists():
            raise FileNotFoundError(f"파일을 찾을 수 없습니다: {path}")

        try:
            blob.make_public()
            return blob.public_url
        except Exception as e:
            logging.error(f"파일 공개 전환 실패: {e}", exc_info=True)
            raise

    def delete(self, path: str) -> bool:
        """파일을 삭제합니다. 실패해도 예외를 던지지 않고 False를 반환합니다."""
        try:
            blob = self._require_bucket().blob(path)
            if blob.exists():
                blob.delete()
                return True
            return False
        except Exception as e:
            logging.error(f"Storage 파일 삭제 실패 (path: {path}): {e}")
            return False
