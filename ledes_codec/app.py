import logging
import os

from flask import Flask, abort, jsonify, request, send_from_directory

from .errors import ConfigurationError, ConfigurationNotFound
from .exporter import Exporter
from .models import ExportRequest
from .settings import load_settings
from .sources import EntrySource, HttpEntrySource
from .store import ConfigurationStore, ExportHistory
from .utbms import activities, expenses


def create_app(settings=None, source: EntrySource = None) -> Flask:
    settings = settings or load_settings()
    configurations = ConfigurationStore(settings.database)
    history = ExportHistory(settings.database, limit=settings.history_limit)
    seed = settings.get("seed_configurations")
    if seed:
        configurations.seed_from_yaml(seed)
    if source is None:
        source = HttpEntrySource(os.environ.get("LEDES_CODEC_BILLING_URL", "http://127.0.0.1:8000/api"))
    exporter = Exporter(configurations, source, history, settings)

    app = Flask(__name__)
    app.config["LEDES_EXPORTER"] = exporter

    def _bad_request(exc):
        return jsonify({"error": str(exc)}), 400

    app.register_error_handler(ConfigurationError, _bad_request)
    app.register_error_handler(ValueError, _bad_request)
    app.register_error_handler(ConfigurationNotFound, lambda exc: (jsonify({"error": str(exc)}), 404))

    @app.route("/api/configurations", methods=["GET"])
    def list_configurations():
        active_only = request.args.get("active") == "true"
        return jsonify([c.to_dict() for c in configurations.list(active_only=active_only)])

    @app.route("/api/configurations", methods=["POST"])
    def create_configuration():
        cfg = configurations.create(request.get_json(force=True))
        return jsonify(cfg.to_dict()), 201

    @app.route("/api/configurations/<cid>", methods=["GET"])
    def get_configuration(cid):
        cfg = configurations.get(cid)
        if cfg is None:
            raise ConfigurationNotFound(cid)
        return jsonify(cfg.to_dict())

    @app.route("/api/configurations/<cid>", methods=["PUT", "PATCH"])
    def update_configuration(cid):
        return jsonify(configurations.update(cid, request.get_json(force=True)).to_dict())

    @app.route("/api/configurations/<cid>", methods=["DELETE"])
    def delete_configuration(cid):
        if not configurations.delete(cid):
            raise ConfigurationNotFound(cid)
        return "", 204

    @app.route("/api/ledes/validate", methods=["POST"])
    def api_validate():
        req = ExportRequest.from_dict(request.get_json(force=True))
        return jsonify(exporter.preview(req).to_dict())

    @app.route("/api/ledes/export", methods=["POST"])
    def api_export():
        req = ExportRequest.from_dict(request.get_json(force=True))
        result = exporter.export(req)
        body = result.to_dict()
        if result.success:
            body["downloadUrl"] = f"/api/ledes/download/{result.file_name}"
        return jsonify(body), (200 if result.success else 422)

    @app.route("/api/ledes/history", methods=["GET"])
    def api_history():
        limit = request.args.get("limit", type=int)
        return jsonify([r.to_dict() for r in history.list(limit)])

    @app.route("/api/ledes/download/<path:file_name>", methods=["GET"])
    def api_download(file_name):
        export_dir = settings.export_dir.resolve()
        if not (export_dir / file_name).is_file():
            abort(404)
        return send_from_directory(export_dir, file_name, as_attachment=True)

    @app.route("/api/utbms/activities", methods=["GET"])
    def api_activities():
        return jsonify([a.to_dict() for a in activities()])

    @app.route("/api/utbms/expenses", methods=["GET"])
    def api_expenses():
        return jsonify([x.to_dict() for x in expenses()])

    return app


def main():
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "5050")))


if __name__ == "__main__":
    main()
