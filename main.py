import uvicorn
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from cutover_planner.config import get_settings
from cutover_planner.logging_setup import setup_logging

if __name__ == "__main__":
    settings = get_settings()
    setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)
    uvicorn.run("cutover_planner.api.app:app", host=settings.api_host, port=settings.api_port, reload=False)
