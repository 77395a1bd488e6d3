import io

import pytest
from openpyxl import Workbook

import mortgage_calc_web.app as web
from mortgage_calc_web.input_store import InputStore


@pytest.fixture
def store(tmp_path, monkeypatch):
    store = InputStore(f"sqlite:///{tmp_path / 'inputs.sqlite3'}")
    monkeypatch.setattr(web, "input_store", store)
    return store


@pytest.fixture
def client(store):
    web.app.config["TESTING"] = True
    with web.app.test_client() as client:
        yield client


def calculate(client, **fields):
    data = {"amount": "200000", "rate": "5", "years": "25", "type": "repayment", "action": "calculate"}
    data.update(fields)
    return client.post("/", data=data)


def user_token(client):
    with client.session_transaction() as session:
        return session["user_token"]


class TestCalculate:
    def test_get_shows_empty_form(self, client):
        response = client.get("/")
        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert "Enter your mortgage details" in page
        assert 'id="results"' not in page

    def test_repayment_results(self, client):
        page = calculate(client).get_data(as_text=True)
        assert '<td id="monthly">£1,169.18</td>' in page
        assert '<td id="interest">£150,754.02</td>' in page
        assert '<td id="total">£350,754.02</td>' in page
        assert "<td>1</td><td>£335.85</td><td>£833.33</td><td>£199,664.15</td>" in page
        assert page.count("<tr><td>") == 12

    def test_interest_only_results(self, client):
        page = calculate(client, amount="100000", rate="4", years="10", type="interest-only").get_data(as_text=True)
        assert '<td id="monthly">£333.33</td>' in page
        assert '<td id="interest">£40,000.00</td>' in page
        assert '<td id="total">£140,000.00</td>' in page
        assert "still due at the end of the term" in page

    def test_validation_errors_hide_results(self, client):
        response = calculate(client, amount="0", rate="101", years="61")
        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert "Enter a positive loan amount." in page
        assert "Enter a rate between 0 and 100%." in page
        assert "Enter a term between 1 and 60 years." in page
        assert 'id="results"' not in page

    def test_entered_values_are_kept(self, client):
        page = calculate(client, amount="abc").get_data(as_text=True)
        assert 'value="abc"' in page

    def test_huge_amount_is_a_field_error(self, client):
        response = calculate(client, amount="1e30")
        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert "Enter a loan amount up to £1,000,000,000,000." in page
        assert 'id="results"' not in page

    def test_negligible_rate(self, client):
        response = calculate(client, rate="1e-30")
        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert '<td id="monthly">£666.67</td>' in page
        assert "<td>1</td><td>£666.67</td><td>£0.00</td><td>£199,333.33</td>" in page


class TestRememberInputs:
    def test_persist_saves_snapshot(self, client, store):
        calculate(client, persist="1", amount="150000")
        assert store.load(user_token(client)) == {
            "amount": "150000",
            "rate": "5",
            "years": "25",
            "type": "repayment",
        }

    def test_saved_inputs_prefill_the_form(self, client):
        calculate(client, persist="1", amount="123456", type="interest-only")
        page = client.get("/").get_data(as_text=True)
        assert 'value="123456"' in page
        assert '<option value="interest-only" selected>' in page
        assert "checked" in page

    def test_invalid_inputs_are_still_remembered(self, client, store):
        calculate(client, persist="1", amount="oops")
        assert store.load(user_token(client))["amount"] == "oops"

    def test_unticking_forgets(self, client, store):
        calculate(client, persist="1")
        calculate(client)
        assert store.load(user_token(client)) is None

    def test_reset_clears_everything(self, client, store):
        calculate(client, persist="1")
        page = client.post("/", data={"action": "reset", "amount": "200000"}).get_data(as_text=True)
        assert 'id="results"' not in page
        assert 'value="200000"' not in page
        assert store.load(user_token(client)) is None

    def test_sessions_are_isolated(self, store):
        with web.app.test_client() as first, web.app.test_client() as second:
            calculate(first, persist="1", amount="111111")
            page = second.get("/").get_data(as_text=True)
            assert 'value="111111"' not in page


class TestBulkUpload:
    def upload(self, client, content, filename):
        return client.post(
            "/bulk",
            data={"excel_file": (io.BytesIO(content), filename)},
            content_type="multipart/form-data",
        )

    def test_workbook_upload(self, client):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(["Amount", "Rate", "Years", "Type"])
        sheet.append([200000, 5, 25, "Repayment"])
        sheet.append(["", 5, 25, "Repayment"])
        buffer = io.BytesIO()
        workbook.save(buffer)

        response = self.upload(client, buffer.getvalue(), "loans.xlsx")
        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert "<td>£1,169.18</td>" in page
        assert "<td>Error</td>" in page
        assert 'class="row-error"' in page

    def test_csv_upload(self, client):
        response = self.upload(client, b"Amount,Rate,Years\n100000,0,10\n", "loans.csv")
        assert response.status_code == 200
        assert "<td>£833.33</td>" in response.get_data(as_text=True)

    def test_missing_columns(self, client):
        response = self.upload(client, b"Amount\n100000\n", "loans.csv")
        assert response.status_code == 400
        assert "Missing required columns: Rate, Years" in response.get_data(as_text=True)

    def test_unsupported_file(self, client):
        response = self.upload(client, b"hello", "notes.txt")
        assert response.status_code == 400
        assert "Unsupported file type" in response.get_data(as_text=True)

    def test_legacy_xls_upload(self, client):
        response = self.upload(client, b"\xd0\xcf\x11\xe0", "loans.xls")
        assert response.status_code == 400
        assert "Legacy .xls workbooks are not supported" in response.get_data(as_text=True)

    def test_hint_names_the_accepted_formats(self, client):
        page = client.get("/").get_data(as_text=True)
        assert "Older .xls workbooks must be saved as .xlsx first." in page

    def test_huge_amount_row_is_an_error_row(self, client):
        content = b"Amount,Rate,Years\n200000,5,25\n1e30,5,25\n100000,0,10\n"
        response = self.upload(client, content, "loans.csv")
        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert "<td>£1,169.18</td>" in page
        assert "<td>£833.33</td>" in page
        assert page.count('class="row-error"') == 1

    def test_no_file(self, client):
        response = client.post("/bulk", data={}, content_type="multipart/form-data")
        assert response.status_code == 400
        assert "Choose a file to upload." in response.get_data(as_text=True)
