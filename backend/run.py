import os

from voteboard import create_app

app = create_app()

if __name__ == '__main__':
    os.makedirs(app.config['DATA_DIR'], exist_ok=True)
    port = app.config['WEBSITE_PORT']
    app.logger.info(f"Server running on port http://{app.config['WEBSITE_URL']}:{port}")
    app.run(port=port, debug=app.config['DEBUG'])
