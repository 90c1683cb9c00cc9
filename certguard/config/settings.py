from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_VERIFICATION_DOMAINS = [
    "verify.certificates.com",
    "certificate.verification.org",
    "edu.certify.com",
    "accreditation.board.org",
    "diploma.verify.edu",
]


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "certguard"
    db_username: str = "certguard"
    db_password: str = "secret"

    pdf_engine: str = "pdfplumber"

    ocr_engine: str = "tesseract"
    ocr_language: str = "eng"
    ocr_max_pages: int = 5
    ocr_render_scale: float = 2.0
    native_text_min_chars: int = 50

    qr_decoder: str = "opencv"
    qr_url_check_timeout_seconds: float = 3.0
    qr_verification_domains: list[str] = DEFAULT_VERIFICATION_DOMAINS

    storage_root: str = "/app/files"

    analysis_max_workers: int = 4

    submission_fake_score: int = 60
    submission_tampered_score: int = 40
