import logging
import os

from app import create_app

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

# Configure logging to reduce noise
logging.getLogger('werkzeug').setLevel(
    logging.WARNING)  # Reduce Flask dev server logs
logging.getLogger('urllib3').setLevel(logging.WARNING)
logging.getLogger('httpx').setLevel(logging.WARNING)
logging.getLogger('botocore').setLevel(logging.WARNING)

app = create_app(os.getenv('FLASK_CONFIG') or 'default')


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', '6217')))
