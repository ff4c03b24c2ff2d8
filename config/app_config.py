import os
from dotenv import load_dotenv

load_dotenv()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Auth
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-secret-key-here")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

# Seeded platform admin
ADMIN_USER = os.getenv("ADMIN_USER", "admin@leaders.co.il")
ADMIN_PASS = os.getenv("ADMIN_PASS", "changeme")

# Money
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "ILS")

# Web Push (VAPID)
VAPID_PUBLIC_KEY = os.getenv("VAPID_PUBLIC_KEY", "")
VAPID_PRIVATE_KEY = os.getenv("VAPID_PRIVATE_KEY", "")
VAPID_SUBJECT = os.getenv("VAPID_SUBJECT", "mailto:support@leaders.co.il")

# Push rate limiting
PUSH_RATE_LIMIT_MAX = int(os.getenv("PUSH_RATE_LIMIT_MAX", 20))
PUSH_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("PUSH_RATE_LIMIT_WINDOW_SECONDS", 60))
RATE_LIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")  # redis://host:6379 to share across instances

# Object storage (S3 compatible)
STORAGE_ENDPOINT = os.getenv("STORAGE_ENDPOINT", "http://localhost:9000")
STORAGE_ACCESS_KEY = os.getenv("STORAGE_ACCESS_KEY", "")
STORAGE_SECRET_KEY = os.getenv("STORAGE_SECRET_KEY", "")
STORAGE_REGION = os.getenv("STORAGE_REGION", "us-east-1")
TASK_UPLOADS_BUCKET = os.getenv("TASK_UPLOADS_BUCKET", "task-uploads")
PAYMENT_PROOFS_BUCKET = os.getenv("PAYMENT_PROOFS_BUCKET", "payment-proofs")

# Task uploads
UPLOAD_MAX_BYTES = int(os.getenv("UPLOAD_MAX_BYTES", 50 * 1024 * 1024))  # 50MB
UPLOAD_ALLOWED_TYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/quicktime",
    "video/x-msvideo",
]

# Worker
METRICS_REFRESH_HOURS = int(os.getenv("METRICS_REFRESH_HOURS", 1))
