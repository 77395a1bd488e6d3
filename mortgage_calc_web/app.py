import logging
import os
from uuid import uuid4

from flask import Flask, render_template, request, session

from mortgage_calc.bulk import BulkInputError, process_file
from mortgage_calc.data_models import RepaymentType
from mortgage_calc.engine import CalculationError, InvalidInput, calculate, summarize
from mortgage_calc.formatter import money
from mortgage_calc.validation import MAX_TERM_YEARS, build_loan_input
from mortgage_calc_web.input_store import SNAPSHOT_FIELDS, create_store_from_env

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
app.config["MAX_CONTENT_LENGTH"] = int(os.environ.get("MAX_UPLOAD_BYTES", 2 * 1024 * 1024))
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
app.jinja_env.filters["money"] = money
input_store = create_store_from_env(os.environ.get("MORTGAGE_INPUTS_DATABASE_URL"))

DEFAULT_VALUES = {"amount": "", "rate": "", "years": "25", "type": RepaymentType.REPAYMENT.value}
TYPE_OPTIONS = {
    RepaymentType.REPAYMENT.value: "Repayment",
    RepaymentType.INTEREST_ONLY.value: "Interest only",
}


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _form_values(form) -> dict:
    """Collect the raw form fields as typed, falling back to the defaults."""
    values = {field: form.get(field, "").strip() for field in SNAPSHOT_FIELDS}
    if not values["type"]:
        values["type"] = DEFAULT_VALUES["type"]
    return values


def _persist_if_enabled(user_token: str, form, values: dict) -> bool:
    """Save the inputs when "remember" is ticked, otherwise forget them."""
    if form.get("persist") == "1":
        input_store.save(user_token, values)
        return True
    input_store.clear(user_token)
    return False


def _run_calculation(values: dict):
    loan = build_loan_input(values["amount"], values["rate"], values["years"], values["type"])
    result = calculate(loan)
    return summarize(result), result.schedule


def _render(**context):
    context.setdefault("values", dict(DEFAULT_VALUES))
    context.setdefault("persist", False)
    context.setdefault("field_errors", {})
    return render_template(
        "index.html",
        type_options=TYPE_OPTIONS,
        max_years=MAX_TERM_YEARS,
        asset_version=app.config["ASSET_VERSION"],
        **context,
    )


@app.route("/", methods=["GET", "POST"])
def index():
    user_token = _ensure_user_token()

    if request.method == "GET":
        saved = input_store.load(user_token)
        values = {**DEFAULT_VALUES, **(saved or {})}
        return _render(values=values, persist=saved is not None)

    action = request.form.get("action", "calculate")
    if action == "reset":
        input_store.clear(user_token)
        return _render()

    values = _form_values(request.form)
    persist = _persist_if_enabled(user_token, request.form, values)
    summary = None
    schedule = None
    field_errors = {}
    error = None
    try:
        summary, schedule = _run_calculation(values)
    except InvalidInput as exc:
        field_errors = exc.errors
    except CalculationError as exc:
        error = str(exc)

    return _render(
        values=values,
        persist=persist,
        summary=summary,
        schedule=schedule,
        field_errors=field_errors,
        error=error,
    )


@app.post("/bulk")
def bulk_upload():
    user_token = _ensure_user_token()
    saved = input_store.load(user_token)
    values = {**DEFAULT_VALUES, **(saved or {})}

    upload = request.files.get("excel_file")
    if upload is None or not upload.filename:
        return _render(values=values, persist=saved is not None, bulk_error="Choose a file to upload."), 400
    try:
        bulk_rows = process_file(upload.stream, upload.filename)
    except BulkInputError as exc:
        logger.warning("Rejected bulk upload %s: %s", upload.filename, exc)
        return _render(values=values, persist=saved is not None, bulk_error=str(exc)), 400

    return _render(values=values, persist=saved is not None, bulk_rows=bulk_rows, bulk_filename=upload.filename)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting Mortgage Calculator web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
