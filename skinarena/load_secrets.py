import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER")
password = os.getenv("DB_PASSWORD")
host = os.getenv("DB_HOST")
port = os.getenv("DB_PORT")
db_name = os.getenv("DB_NAME")
database_url = os.getenv("DATABASE_URL")

redis_host = os.getenv("REDIS_HOST", "")
redis_port = int(os.getenv("REDIS_PORT", "6379"))
redis_channel = os.getenv("REDIS_CHANNEL", "skinarena:broadcast")
