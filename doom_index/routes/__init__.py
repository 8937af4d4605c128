def register_blueprints(app):
    from doom_index.routes.health import health_bp
    from doom_index.routes.paintings import paintings_bp
    from doom_index.routes.admin import admin_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(paintings_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
