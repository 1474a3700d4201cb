from datetime import datetime, timedelta, timezone

import pytest
from typer.testing import CliRunner

import afipgate.cli as cli
from afipgate import AfipClient
from afipgate.cli import app

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path, res_folder, http_client, monkeypatch):
    path = tmp_path / "afipgate.yaml"
    path.write_text(f"principal: 20111111112\nres_folder: {res_folder}\n")
    monkeypatch.delenv("AFIPGATE_CUIT", raising=False)
    monkeypatch.delenv("AFIPGATE_PRODUCTION", raising=False)
    monkeypatch.delenv("AFIPGATE_STORE_BACKEND", raising=False)
    monkeypatch.setattr(cli, "AfipClient", lambda config: AfipClient(config, http_client=http_client))
    return str(path)


@pytest.fixture
def wsaa(soap_endpoint, login_response):
    now = datetime.now(timezone.utc)
    soap_endpoint.respond_raw(
        "loginCms",
        login_response("secret-token", "secret-sign", now - timedelta(minutes=10), now + timedelta(hours=12)),
    )
    return soap_endpoint


def test_ticket_command_stores_ticket_without_printing_it(config_path, wsaa, res_folder):
    result = runner.invoke(app, ["--config", config_path, "ticket", "wsfe"])

    assert (
        result.exit_code == 0
    ), f"Command failed with exit code {result.exit_code}. Output: {result.stdout}"
    assert "TA-20111111112-wsfe.json" in result.stdout
    assert "secret-token" not in result.stdout
    assert "secret-sign" not in result.stdout
    assert (res_folder / "TA-20111111112-wsfe.json").exists()

    again = runner.invoke(app, ["--config", config_path, "ticket", "wsfe"])
    assert again.exit_code == 0
    assert len(wsaa.calls("loginCms")) == 1, "Stored ticket should have been reused"

    forced = runner.invoke(app, ["--config", config_path, "ticket", "wsfe", "--refresh"])
    assert forced.exit_code == 0
    assert len(wsaa.calls("loginCms")) == 2


def test_ticket_command_reports_failures(config_path, soap_endpoint, envelope):
    soap_endpoint.respond_raw(
        "loginCms",
        envelope(
            "<soap:Fault><faultcode>ns1:cms.cert.untrusted</faultcode>"
            "<faultstring>Certificado no emitido por AC de confianza</faultstring></soap:Fault>",
            "1.1",
        ),
        status_code=500,
    )

    result = runner.invoke(app, ["--config", config_path, "ticket", "wsfe"])

    assert result.exit_code == 1
    assert "Error:" in result.stdout


def test_status_command(config_path, soap_endpoint):
    soap_endpoint.respond(
        "FEDummy", "<AppServer>OK</AppServer><DbServer>OK</DbServer><AuthServer>OK</AuthServer>"
    )

    result = runner.invoke(app, ["--config", config_path, "status", "wsfe"])

    assert (
        result.exit_code == 0
    ), f"Command failed with exit code {result.exit_code}. Output: {result.stdout}"
    assert "AppServer\tOK" in result.stdout
    assert soap_endpoint.calls("loginCms") == []


def test_status_unknown_service(config_path):
    result = runner.invoke(app, ["--config", config_path, "status", "nope"])

    assert result.exit_code == 1
    assert "nope" in result.stdout


def test_last_voucher_command(config_path, wsaa):
    wsaa.respond(
        "FEXGetLast_CMP",
        "<FEXResult_LastCMP><Cbte_nro>12</Cbte_nro></FEXResult_LastCMP>",
        "http://ar.gov.afip.dif.fexv1/",
    )

    result = runner.invoke(
        app,
        ["--config", config_path, "last-voucher", "--sales-point", "3", "--type", "19", "--export"],
    )

    assert (
        result.exit_code == 0
    ), f"Command failed with exit code {result.exit_code}. Output: {result.stdout}"
    assert result.stdout.strip() == "12"
    assert wsaa.calls("FEXGetLast_CMP")[0].params["Auth"]["Token"] == "secret-token"
