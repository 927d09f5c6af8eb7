# app.py
import asyncio
import io
import logging

from flask import Flask, abort, jsonify, request, send_file
from sqlalchemy.orm import selectinload

from company_profile import (
    CompanyProfileError,
    SqlSettingsStorage,
    clear_company_profile,
    load_company_profile,
    save_company_profile,
)
from config import Config
from documents import InvoiceSource, OrderSource
from models import (
    Base, make_engine, make_session_factory,
    Invoice, Order, create_invoice_from_order,
)
from pdf_service import RenderOptions, render_invoice_pdf
from references import SqlCatalog


def _company_json(company) -> dict:
    if company is None:
        return {}
    return {
        "name": company.name or "",
        "email": company.email or "",
        "phoneNumbers": list(company.phone_numbers),
        "addresses": list(company.addresses),
    }


# -----------------------------
# App factory
# -----------------------------
def create_app(config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"))

    engine = make_engine(app.config["SQLALCHEMY_DATABASE_URI"], echo=app.config.get("SQLALCHEMY_ECHO", False))
    Base.metadata.create_all(engine)
    SessionLocal = make_session_factory(engine)

    def db_session():
        return SessionLocal()

    catalog = SqlCatalog(SessionLocal)
    settings_store = SqlSettingsStorage(SessionLocal)
    app.extensions["invoicedesk.session_factory"] = SessionLocal

    def _pdf_response(source):
        # Tests (and deployments without a logo) can inject a fetcher.
        fetcher = app.config.get("LOGO_FETCHER")
        rendered = asyncio.run(
            render_invoice_pdf(
                source,
                options=RenderOptions(logo_url=app.config.get("DEFAULT_LOGO_URL")),
                catalog=catalog,
                storage=settings_store,
                fetcher=fetcher,
            )
        )
        return send_file(
            io.BytesIO(rendered.content),
            as_attachment=True,
            download_name=rendered.filename,
            mimetype="application/pdf",
        )

    # -----------------------------
    # PDF downloads
    # -----------------------------
    @app.route("/invoices/<int:invoice_id>/pdf")
    def invoice_pdf(invoice_id):
        with db_session() as s:
            inv = (
                s.query(Invoice)
                .options(selectinload(Invoice.items))
                .filter(Invoice.id == invoice_id)
                .first()
            )
            if not inv:
                abort(404)
            return _pdf_response(InvoiceSource(inv))

    @app.route("/orders/<int:order_id>/pdf")
    def order_pdf(order_id):
        with db_session() as s:
            order = (
                s.query(Order)
                .options(selectinload(Order.items), selectinload(Order.client))
                .filter(Order.id == order_id)
                .first()
            )
            if not order:
                abort(404)
            return _pdf_response(OrderSource(order.client, order))

    @app.route("/invoices/pdf", methods=["POST"])
    def invoice_pdf_from_json():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict) or not isinstance(payload.get("client"), dict):
            return jsonify({"error": "Expected an invoice object with a client"}), 400
        return _pdf_response(InvoiceSource(payload))

    @app.route("/orders/<int:order_id>/invoice", methods=["POST"])
    def order_create_invoice(order_id):
        with db_session() as s:
            order = s.get(Order, order_id)
            if not order:
                abort(404)
            try:
                inv = create_invoice_from_order(
                    s,
                    order,
                    due_days=app.config.get("INVOICE_DUE_DAYS", 30),
                    seq_width=app.config.get("INVOICE_SEQ_WIDTH", 4),
                )
            except ValueError as e:
                return jsonify({"error": str(e)}), 409
            s.commit()
            return jsonify({"id": inv.id, "invoice_number": inv.invoice_number}), 201

    # -----------------------------
    # Company profile (settings)
    # -----------------------------
    @app.route("/settings/company-profile", methods=["GET"])
    def company_profile_get():
        return jsonify(_company_json(load_company_profile(settings_store)))

    @app.route("/settings/company-profile", methods=["PUT"])
    def company_profile_put():
        payload = request.get_json(silent=True) or {}
        try:
            company = save_company_profile(settings_store, payload)
        except CompanyProfileError as e:
            return jsonify({"error": str(e)}), 400
        return jsonify(_company_json(company))

    @app.route("/settings/company-profile", methods=["DELETE"])
    def company_profile_delete():
        clear_company_profile(settings_store)
        return "", 204

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
