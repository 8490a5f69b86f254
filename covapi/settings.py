import os

def str2bool(v):
  return v.lower() in ("y", "yes", "true", "t", "1")


# Flask settings
FLASK_SERVER_NAME = os.getenv('FLASK_SERVER_NAME', 'localhost:5000')
FLASK_DEBUG = str2bool(os.getenv('FLASK_DEBUG', 'True'))  # Do not use debug mode in production

# Flask-Restplus settings
RESTPLUS_SWAGGER_UI_DOC_EXPANSION = os.getenv('RESTPLUS_SWAGGER_UI_DOC_EXPANSION', 'list')
RESTPLUS_VALIDATE = str2bool(os.getenv('RESTPLUS_VALIDATE', 'True'))
RESTPLUS_MASK_SWAGGER = str2bool(os.getenv('RESTPLUS_MASK_SWAGGER', 'False'))
RESTPLUS_ERROR_404_HELP = str2bool(os.getenv('RESTPLUS_ERROR_404_HELP', 'False'))

# DB
DATABASE_URL = os.getenv('DATABASE_URL', 'postgresql://covuser:mysecretpassword@db/coverage')
DATABASE_POOL_SIZE = int(os.getenv('DATABASE_POOL_SIZE', '10'))
DATABASE_POOL_TIMEOUT = int(os.getenv('DATABASE_POOL_TIMEOUT', '30'))

# Builds
# Number of lookup + create rounds after a uniqueness conflict before giving up with 409
BUILD_CREATE_MAX_ATTEMPTS = int(os.getenv('BUILD_CREATE_MAX_ATTEMPTS', '3'))
DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', '20'))
MAX_PAGE_SIZE = int(os.getenv('MAX_PAGE_SIZE', '100'))

# Project coverage cascade
CASCADE_MAX_ATTEMPTS = int(os.getenv('CASCADE_MAX_ATTEMPTS', '3'))
CASCADE_RETRY_DELAY_SECONDS = float(os.getenv('CASCADE_RETRY_DELAY_SECONDS', '0.1'))
