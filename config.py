import os
from dotenv import load_dotenv


load_dotenv()

class Config:
    """ This class contains the database, cache, JWT and Flask configuration structure. """
    SQLALCHEMY_DATABASE_URI = os.getenv('SQLALCHEMY_DATABASE_URI', 'sqlite:///stayhub.db')
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'False') == 'True'
    SECRET_KEY = os.getenv('SECRET_KEY')
    DEBUG = os.getenv('DEBUG', 'False') == 'True'

    # Tokens
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ACCESS_TOKEN_HOURS = int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', '24'))
    JWT_REFRESH_TOKEN_HOURS = int(os.getenv('JWT_REFRESH_TOKEN_EXPIRES', '168'))

    # Lookaside cache (empty REDIS_URL disables it)
    REDIS_URL = os.getenv('REDIS_URL', '')
    PROPERTY_CACHE_TTL = int(os.getenv('PROPERTY_CACHE_TTL', '3600'))

    # Logging (empty LOG_DIR disables the file handler)
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    ALLOWED_ORIGINS = os.getenv('ALLOWED_ORIGINS', 'http://localhost:5173').split(',')
