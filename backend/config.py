import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///voteboard.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Werkzeug debugger, off unless FLASK_DEBUG is set
    DEBUG = os.environ.get('FLASK_DEBUG', '0') in ('1', 'true', 'True')
    # Votifier endpoint of the game server
    VOTIFIER_HOST = os.environ.get('IP', '127.0.0.1')
    VOTIFIER_PORT = int(os.environ.get('PORT', '8192'))
    VOTIFIER_TOKEN = os.environ.get('VOTIFIER_TOKEN', '')
    # Prefix of the service name sent with each vote, e.g. "MyServer" -> "MyServer2"
    SERVER_NAME_TAG = os.environ.get('NAME', 'voteboard')
    ADISTRA_URL = os.environ.get('ADISTRA_URL', '')
    ADISTRA_REDIRECT = os.environ.get('ADISTRA_REDIRECT', '')
    WEBSITE_URL = os.environ.get('WEBSITE_URL', 'localhost')
    WEBSITE_PORT = int(os.environ.get('WEBSITE_PORT', '3000'))
    # Vote bookkeeping
    DATA_DIR = os.environ.get('DATA_DIR') or os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')
    VOTE_CATEGORIES = tuple(c.strip() for c in os.environ.get('VOTE_CATEGORIES', '1,2,3,4').split(',') if c.strip())
    RELAY_TIMEOUT_MS = int(os.environ.get('RELAY_TIMEOUT_MS', '5000'))
    # "yaml" (one file per ledger) or "sql" (tables in SQLALCHEMY_DATABASE_URI)
    STORE_BACKEND = os.environ.get('STORE_BACKEND', 'yaml')
    # Accept dots in usernames (Bedrock-style names)
    ALLOW_DOTTED_NAMES = os.environ.get('ALLOW_DOTTED_NAMES', '1') not in ('0', 'false', 'False')
    LEADERBOARD_MAX_LIMIT = int(os.environ.get('LEADERBOARD_MAX_LIMIT', '100'))
