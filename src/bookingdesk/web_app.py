from __future__ import annotations

import logging

from flask import Flask, flash, jsonify, redirect, render_template, request, session, url_for

from .auth import AuthError, AuthService, login_required, login_user, logout_user
from .booking_form import BookingForm, FormStep
from .config import AppConfig
from .db import Db, DbError
from .domain import UpdateServiceOrderInput
from .enums import PaymentStatus, ProductPackage, WorkStatus, payment_badge, work_badge
from .notifications import (
    DiscordNotifier,
    MissingFieldsError,
    NotificationConfigError,
    NotificationError,
    Notifier,
    attachment_from_upload,
    parse_form_request,
    parse_json_request,
)
from .origin_filter import install_origin_filter
from .repositories.order_repo import OrderRepository
from .repositories.user_repo import UserRepository
from .services.data_source import OrderDataSource, build_order_source
from .services.order_service import OrderService, status_summary

logger = logging.getLogger(__name__)

BOOKING_SESSION_KEY = "booking"

# tab key -> (label, predicate over an extended order)
ORDER_TABS = {
    "payment-pending": ("Payment pending", lambda o: o.so_payment_status is PaymentStatus.PENDING),
    "work-pending": ("Work waiting", lambda o: o.so_work_status is WorkStatus.WAITING),
    "work-completed": ("Work completed", lambda o: o.so_work_status is WorkStatus.COMPLETED),
    "all": ("All orders", lambda o: True),
}
DEFAULT_TAB = "payment-pending"


def _load_form() -> BookingForm:
    return BookingForm.from_dict(session.get(BOOKING_SESSION_KEY))


def _save_form(form: BookingForm) -> None:
    session[BOOKING_SESSION_KEY] = form.to_dict()


def create_app(
    cfg: AppConfig,
    *,
    order_source: OrderDataSource | None = None,
    order_service: OrderService | None = None,
    notifier: Notifier | None = None,
    auth: AuthService | None = None,
) -> Flask:
    app = Flask(__name__)
    app.secret_key = cfg.secret_key
    app.config["APP_NAME"] = cfg.name

    db = Db(cfg.db)
    if order_service is None and cfg.data_source == "live":
        order_service = OrderService(db=db, order_repo=OrderRepository())
    if order_source is None:
        order_source = build_order_source(cfg.data_source, order_service)
    if notifier is None:
        notifier = DiscordNotifier(cfg.webhook.url, timeout=cfg.webhook.timeout)
    if auth is None:
        auth = AuthService(db=db, user_repo=UserRepository())

    install_origin_filter(app, cfg.security.origins())

    @app.context_processor
    def _inject_helpers():
        return {
            "app_name": cfg.name,
            "payment_badge": payment_badge,
            "work_badge": work_badge,
            "packages": list(ProductPackage),
            "FormStep": FormStep,
        }

    @app.route("/", methods=["GET", "POST"])
    def booking():
        form = _load_form()
        if request.method == "POST":
            form.error = ""
            action = request.form.get("action", "next")
            if action == "reset":
                form.reset()
            elif action == "back":
                form.update(request.form)
                if form.step is not FormStep.USER_DETAILS:
                    form.back()
            elif action == "submit" and form.step is FormStep.APPOINTMENT_DETAILS:
                form.update(request.form)
                form.update_field("receipt", attachment_from_upload(request.files.get("receipt")))
                if form.submit(notifier):
                    flash("Request submitted successfully!", "success")
            elif form.step is not FormStep.APPOINTMENT_DETAILS:
                form.update(request.form)
                form.next()
            _save_form(form)
            return redirect(url_for("booking"))

        return render_template("booking.html", form=form)

    @app.post("/api/webhook")
    def api_webhook():
        try:
            if request.is_json:
                booking_request = parse_json_request(request.get_json(silent=True))
            elif request.mimetype == "multipart/form-data":
                booking_request = parse_form_request(request.form, request.files)
            else:
                booking_request = parse_json_request({})
            notifier.send(booking_request)
        except MissingFieldsError as e:
            return jsonify({"error": str(e)}), 400
        except NotificationConfigError as e:
            return jsonify({"error": str(e)}), 500
        except NotificationError:
            return jsonify({"error": "Failed to process request"}), 500
        except Exception:
            logger.exception("Unexpected error while handling booking webhook")
            return jsonify({"error": "Failed to process request"}), 500
        return jsonify({"success": True}), 200

    @app.route("/login", methods=["GET", "POST"])
    def login():
        if request.method == "POST":
            email = request.form.get("email", "").strip()
            password = request.form.get("password", "")
            try:
                user = auth.authenticate(email, password)
            except AuthError as e:
                flash(str(e), "danger")
                return render_template("login.html", email=email), 401
            except DbError as e:
                logger.error("Login failed: %s", e)
                flash("Login is unavailable right now. Please try again.", "danger")
                return render_template("login.html", email=email), 503
            login_user(user)
            target = request.args.get("next", "")
            if not target.startswith("/") or target.startswith("//"):
                target = url_for("orders_list")
            return redirect(target)
        return render_template("login.html", email="")

    @app.route("/register", methods=["GET", "POST"])
    def register():
        if request.method == "POST":
            email = request.form.get("email", "").strip()
            try:
                auth.register(email, request.form.get("password", ""))
            except AuthError as e:
                flash(str(e), "danger")
                return render_template("register.html", email=email), 400
            except DbError as e:
                logger.error("Registration failed: %s", e)
                flash("Registration is unavailable right now. Please try again.", "danger")
                return render_template("register.html", email=email), 503
            flash("Account created. An administrator must approve it before you can log in.", "success")
            return redirect(url_for("login"))
        return render_template("register.html", email="")

    @app.post("/logout")
    def logout():
        logout_user()
        flash("Logged out", "info")
        return redirect(url_for("login"))

    @app.get("/admin/orders")
    @login_required
    def orders_list():
        tab = request.args.get("tab", DEFAULT_TAB)
        if tab not in ORDER_TABS:
            tab = DEFAULT_TAB
        result = order_source.list_orders()
        if not result.ok:
            flash("Failed to load orders. Please refresh the page.", "danger")
        _, keep = ORDER_TABS[tab]
        return render_template(
            "orders.html",
            tabs=ORDER_TABS,
            tab=tab,
            orders=[o for o in result.items if keep(o)],
            counts={key: sum(1 for o in result.items if pred(o)) for key, (_, pred) in ORDER_TABS.items()},
            summary=status_summary(result.items),
            load_failed=not result.ok,
            can_edit=order_service is not None,
            payment_statuses=list(PaymentStatus),
            work_statuses=list(WorkStatus),
        )

    @app.post("/admin/orders/<int:order_id>/delete")
    @login_required
    def orders_delete(order_id: int):
        if order_source.delete_order(order_id):
            flash(f"Order #{order_id} has been removed", "success")
        else:
            flash("Failed to delete order. Please try again.", "danger")
        return redirect(url_for("orders_list", tab=request.form.get("tab", DEFAULT_TAB)))

    @app.post("/admin/orders/<int:order_id>/status")
    @login_required
    def orders_update_status(order_id: int):
        if order_service is None:
            flash("Editing is disabled while showing placeholder data", "warning")
            return redirect(url_for("orders_list"))
        try:
            changes = UpdateServiceOrderInput(
                so_work_status=WorkStatus.parse(request.form["work_status"]) if request.form.get("work_status") else None,
                so_payment_status=(
                    PaymentStatus.parse(request.form["payment_status"]) if request.form.get("payment_status") else None
                ),
                so_time_slot=request.form.get("time_slot", "").strip() or None,
            )
        except ValueError as e:
            flash(f"Validation error: {e}", "warning")
            return redirect(url_for("orders_list"))

        if order_service.update_order(order_id, changes) is None:
            flash(f"Failed to update order #{order_id}", "danger")
        else:
            flash(f"Order #{order_id} updated", "success")
        return redirect(url_for("orders_list", tab=request.form.get("tab", DEFAULT_TAB)))

    return app
