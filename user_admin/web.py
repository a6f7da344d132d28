"""Flask-powered web interface and REST surface for the user admin panel."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from flask import (
    Flask,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from flask import has_request_context

from .config import AppConfig, ensure_default_config, load_config
from .graph_client import GraphClient, GraphClientError, GraphConfigurationError
from .models import AddUserForm, filter_users
from .panel import DELETE_PROMPT
from .view import PanelView


_TEMPLATE_FOLDER = Path(__file__).resolve().parent / "templates"


def create_app(config_path: Optional[Path | str] = None) -> Flask:
    """Create and configure the Flask application."""

    resolved_config_path = Path(config_path) if config_path else None
    ensure_default_config(resolved_config_path)

    app = Flask(__name__, template_folder=str(_TEMPLATE_FOLDER))
    app.config["SECRET_KEY"] = os.environ.get("USER_ADMIN_WEB_SECRET", "user-admin-secret")
    app.config["CONFIG_PATH"] = resolved_config_path
    app.json.sort_keys = False

    register_routes(app)
    return app


def register_routes(app: Flask) -> None:
    """Attach all web routes to the provided Flask app."""

    @app.route("/")
    def index() -> str:
        config = _load_app_config(app)
        return render_template("index.html", config=config)

    @app.route("/users")
    def users_page() -> str:
        config = _load_app_config(app)
        query = request.args.get("q", "")
        view = PanelView(search_value=query)
        if request.args.get("modal") == "open":
            view.show_modal()
        client = _get_graph_client(app, config)
        if client is None:
            flash("Microsoft Graph credentials are not configured.", "error")
        else:
            try:
                users = client.list_users()
            except GraphClientError as exc:
                app.logger.error("Error fetching users: %s", exc)
                flash(f"Unable to load users: {exc}", "error")
            else:
                view.render_users(
                    filter_users(users, query),
                    delete_action=lambda user_id: url_for("confirm_delete_user", user_id=user_id),
                )
        return render_template("users.html", panel=view.render(), query=query)

    @app.get("/users/<path:user_id>/delete")
    def confirm_delete_user(user_id: str) -> str:
        return render_template("confirm_delete.html", user_id=user_id, prompt=DELETE_PROMPT)

    @app.post("/users/<path:user_id>/delete")
    def delete_user_form(user_id: str) -> Any:
        if request.form.get("confirm") != "yes":
            flash("Deletion cancelled.", "info")
            return redirect(url_for("users_page"))

        config = _load_app_config(app)
        client = _get_graph_client(app, config)
        if client is None:
            flash("Microsoft Graph credentials are not configured.", "error")
            return redirect(url_for("users_page"))
        try:
            client.delete_user(user_id)
        except GraphClientError as exc:
            app.logger.error("Error deleting user %s: %s", user_id, exc)
            flash("Failed to delete the user", "error")
        else:
            app.logger.info("Deleted user %s", user_id)
            flash("User deleted successfully", "success")
        return redirect(url_for("users_page"))

    @app.post("/users/add")
    def add_user_form() -> Any:
        config = _load_app_config(app)
        form = AddUserForm.from_pairs(request.form.items())
        app.logger.info("New user data: %s", form.loggable())
        if config.panel.add_user_mode != "create":
            return redirect(url_for("users_page"))

        client = _get_graph_client(app, config)
        if client is None:
            flash("Microsoft Graph credentials are not configured.", "error")
            return redirect(url_for("users_page"))
        try:
            client.create_user(form, password=config.panel.default_password)
        except GraphClientError as exc:
            app.logger.error("Error creating user: %s", exc)
            flash("Failed to create the user", "error")
        else:
            flash("User created successfully", "success")
        return redirect(url_for("users_page"))

    @app.get("/api/users")
    def api_users() -> Any:
        config = _load_app_config(app)
        client, error = _require_graph_client(app, config)
        if error:
            return error
        try:
            users = client.list_users()
        except GraphClientError as exc:
            app.logger.error("Error fetching users: %s", exc)
            return jsonify({"message": "Error fetching users"}), 500
        return jsonify([user.to_dict() for user in users])

    @app.post("/api/users/add")
    def api_add_user() -> Any:
        config = _load_app_config(app)
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return jsonify({"message": "Error decoding user data"}), 400
        form = AddUserForm.from_pairs(payload.items())
        if not form.get("userPrincipalName").strip():
            return jsonify({"message": "userPrincipalName is required"}), 400
        if not (form.get("password") or config.panel.default_password):
            return jsonify({"message": "An initial password is required"}), 400

        client, error = _require_graph_client(app, config)
        if error:
            return error
        try:
            user = client.create_user(form, password=config.panel.default_password)
        except GraphClientError as exc:
            app.logger.error("Error creating user: %s", exc)
            return jsonify({"message": "Error creating user"}), 500
        app.logger.info("Created user %s", user.user_principal_name)
        return jsonify({"user": user.to_dict()}), 201

    @app.delete("/api/users/<path:user_id>")
    def api_delete_user(user_id: str) -> Any:
        config = _load_app_config(app)
        client, error = _require_graph_client(app, config)
        if error:
            return error
        try:
            client.delete_user(user_id)
        except GraphClientError as exc:
            app.logger.error("Error deleting user %s: %s", user_id, exc)
            return jsonify({"message": f"Error deleting user: {exc}"}), 500
        app.logger.info("Deleted user %s", user_id)
        return jsonify({"message": "User deleted successfully"})


def _get_graph_client(app: Flask, config: AppConfig) -> Optional[GraphClient]:
    graph_config = config.graph
    if not graph_config.has_credentials:
        return None

    injected = app.config.get("GRAPH_CLIENT")
    if injected is not None:
        return injected

    signature: Tuple[Any, ...] = (
        graph_config.tenant_id,
        graph_config.client_id,
        graph_config.client_secret,
        graph_config.base_url,
        graph_config.include_roles,
    )
    cached_signature = app.config.get("_GRAPH_CONFIG_SIGNATURE")
    cached_client = app.config.get("_GRAPH_CLIENT")
    if cached_client and cached_signature == signature:
        return cached_client

    try:
        client = GraphClient(graph_config)
    except GraphConfigurationError:
        return None

    app.config["_GRAPH_CLIENT"] = client
    app.config["_GRAPH_CONFIG_SIGNATURE"] = signature
    return client


def _require_graph_client(app: Flask, config: AppConfig) -> Tuple[Any, Optional[Tuple[Any, int]]]:
    client = _get_graph_client(app, config)
    if client is None:
        app.logger.error("Microsoft Graph credentials are not configured.")
        body: Dict[str, Any] = {"message": "Error loading environment variables"}
        return None, (jsonify(body), 500)
    return client, None


def _load_app_config(app: Flask) -> AppConfig:
    if has_request_context():
        cached = getattr(g, "_app_config", None)
        if cached is None:
            cached = load_config(app.config.get("CONFIG_PATH"))
            g._app_config = cached
        return cached
    return load_config(app.config.get("CONFIG_PATH"))


def main() -> None:
    """Run the development server."""

    app = create_app()
    app.run(
        host=os.environ.get("USER_ADMIN_WEB_HOST", "0.0.0.0"),
        port=int(os.environ.get("USER_ADMIN_WEB_PORT", "5000")),
        debug=os.environ.get("USER_ADMIN_WEB_DEBUG") == "1",
    )


if __name__ == "__main__":
    main()
