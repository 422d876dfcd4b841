import os
from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

from jsunravel.routes.deobfuscate import deobfuscate_bp
from jsunravel.services.logger_service import logger_service


def create_app(testing=False):
    load_dotenv()
    app = Flask(__name__)
    CORS(app)

    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    app.config['LOG_DIR'] = os.getenv('LOG_DIR', os.path.join(os.getcwd(), 'logs'))
    app.config['MAX_SOURCE_BYTES'] = int(os.getenv('MAX_SOURCE_BYTES', 5 * 1024 * 1024))

    if testing:
        app.config['TESTING'] = True
    else:
        # Tests keep pytest's logging handlers in place
        logger_service.init_app(app)

    app.register_blueprint(deobfuscate_bp, url_prefix='/api')

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
