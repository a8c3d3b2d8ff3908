import logging
import os

from api.routes import app

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    port = int(os.getenv('PORT', '8000'))
    logger.info(f"Starting Flask server on port {port}...")
    app.run(debug=True, port=port)
