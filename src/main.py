import os
import logging
from flask import Flask, jsonify
from flask_cors import CORS

from src.config import config
from src.extensions import db, jwt

# Global scheduler instance - will be initialized lazily
tick_scheduler = None

def create_app(config_name=None):
    """Application factory pattern."""
    app = Flask(__name__)
    
    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')
    
    app.config.from_object(config[config_name])
    
    # Validate production configuration if needed
    if config_name == 'production':
        config[config_name].validate_config()
    
    # Configure CORS
    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)
    
    # Initialize extensions
    db.init_app(app)
    jwt.init_app(app)
    
    # Configure logging first so we can see route registration errors
    log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.getLogger('src').setLevel(log_level)
    app.logger.setLevel(log_level)
    if not app.debug:
        if not os.path.exists('logs'):
            os.mkdir('logs')
        file_handler = logging.FileHandler('logs/sequence_engine.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(log_level)
        app.logger.addHandler(file_handler)
        logging.getLogger('src').addHandler(file_handler)
        app.logger.info('Sequence Engine API startup')
    
    # Register blueprints
    from src.routes.sequence import sequence_bp
    app.register_blueprint(sequence_bp, url_prefix='/api/v1')
    app.logger.info("Registered sequence blueprint")
    
    # Register global error handlers
    from src.utils.error_handlers import register_error_handlers
    register_error_handlers(app)
    app.logger.info("Registered global error handlers")
    
    # Create database tables (avoid fatal boot failures in production)
    try:
        with app.app_context():
            # In production, only run if explicitly enabled
            if config_name != 'production' or os.environ.get('STARTUP_DB_CREATE_ALL', 'false').lower() == 'true':
                db.create_all()
                app.logger.info("Database tables created/verified")
            else:
                app.logger.info("Skipping db.create_all() on startup in production")
    except Exception as e:
        app.logger.error(f"Failed to create/verify database tables on startup: {str(e)}")
    
    # Initialize scheduler with app context
    from src.services.scheduler import get_tick_scheduler
    global tick_scheduler
    tick_scheduler = get_tick_scheduler()
    tick_scheduler.init_app(app)
    
    if app.config.get('START_SCHEDULER', False):
        try:
            tick_scheduler.start()
            app.logger.info("Tick scheduler started automatically")
        except Exception as e:
            app.logger.error(f"Failed to start scheduler: {str(e)}")
    
    # Simple health check endpoint
    @app.route('/')
    def index():
        return jsonify({'status': 'ok', 'message': 'Sequence Engine API is running'})
    
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=5001, debug=True)
