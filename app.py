import os
from datetime import datetime

from flask import Flask, jsonify
from flask_cors import CORS

from Controllers.errorController import error_bp
from Routes.userRoutes import user_routes
from Routes.foodRoutes import food_routes
from Routes.chatRoutes import chat_routes
from Utils.config import Config
from Utils.db import init_db
from Utils.limiter import limiter
from Utils.logger import setup_logging
from Utils.media import CloudinaryMedia


def create_app(config_class=Config):
    # ----------------------------
    # Flask app configuration
    # ----------------------------
    app = Flask(__name__, static_folder=None)
    app.config.from_object(config_class)

    # ----------------------------
    # Logging Configuration
    # ----------------------------
    setup_logging(app)

    # ----------------------------
    # Database, media host, rate limiter, CORS
    # ----------------------------
    init_db(app)
    CloudinaryMedia(app)
    limiter.init_app(app)
    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}}, supports_credentials=True)

    # ----------------------------
    # Register blueprints
    # ----------------------------
    app.register_blueprint(error_bp)
    app.register_blueprint(user_routes)
    app.register_blueprint(food_routes)
    app.register_blueprint(chat_routes)

    @app.route('/api/health')
    @limiter.exempt
    def health():
        return jsonify({
            "status": "ok",
            "message": "Wasteless API is running",
            "timestamp": datetime.utcnow().isoformat(),
            "environment": app.config["ENV_NAME"]
        }), 200

    return app


# ----------------------------
# Run the app
# ----------------------------
if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    application = create_app()
    application.logger.info(f"App running on port {port}...")
    application.run(host='0.0.0.0', port=port, debug=False)
