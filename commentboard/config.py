"""
Configuration settings for the Comment Board
"""
import os

from dotenv import load_dotenv

# Variables already exported in the environment win over .env entries
load_dotenv()

class Config:
    """Flask application configuration"""

    # Flask secret key for sessions (holds the backend auth tokens)
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production-12345'

    # Hosted backend project (both required)
    SUPABASE_URL = os.environ.get('SUPABASE_URL')
    SUPABASE_ANON_KEY = os.environ.get('SUPABASE_ANON_KEY')
    BACKEND_TIMEOUT = float(os.environ.get('BACKEND_TIMEOUT') or 10)

    # Application settings
    COMMENTS_TABLE = os.environ.get('COMMENTS_TABLE') or 'comments'
    DISPLAY_TIMEZONE = os.environ.get('DISPLAY_TIMEZONE') or 'UTC'
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'

    # Where the sign-up confirmation link lands; the auth service default when unset
    SIGNUP_REDIRECT_URL = os.environ.get('SIGNUP_REDIRECT_URL')

    REQUIRED_KEYS = ('SUPABASE_URL', 'SUPABASE_ANON_KEY')


class TestConfig(Config):
    """Testing configuration"""
    TESTING = True
    SECRET_KEY = 'test-secret'
    SUPABASE_URL = 'https://project.supabase.test'
    SUPABASE_ANON_KEY = 'anon-test-key'
    LOG_LEVEL = 'DEBUG'
    SIGNUP_REDIRECT_URL = 'http://localhost/'
