import os
from datetime import timedelta

class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)

    # payment gateway secret, only read by the verify-payment endpoint
    RAZORPAY_KEY_SECRET = os.environ.get("RAZORPAY_KEY_SECRET", "")

    SITE_URL = os.environ.get("SITE_URL", "http://localhost:3000")
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    REFERRAL_REWARD_AMOUNT = int(os.environ.get("REFERRAL_REWARD_AMOUNT", 100))
    REFERRAL_COUPON_TTL_DAYS = int(os.environ.get("REFERRAL_COUPON_TTL_DAYS", 30))

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    JWT_SECRET_KEY = "test-secret-with-enough-length-for-hs256"
    RAZORPAY_KEY_SECRET = "test_razorpay_secret"
    SITE_URL = "https://shop.test"
    LOG_LEVEL = "DEBUG"

    @staticmethod
    def init_app(app):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
