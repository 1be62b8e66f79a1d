"""
test_vin_service.py — VIN validation, decoders and the lookup cache

Decoders are exercised against mocked httpx responses; the lookup service
is exercised with make_decoder fakes so no network or retry sleeps are involved.

Called by: pytest
Depends on: wheelsglass/services/vin_service.py, wheelsglass/connectors/vin_decoders.py
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from wheelsglass.connectors.vin_decoders import NhtsaDecoder, OmegaEdiDecoder, VehicleDetails
from wheelsglass.models import VehicleLookup
from wheelsglass.services.vin_service import (
    VinLookupService,
    is_valid_vin_checksum,
    is_valid_vin_format,
    validate_vin,
    year_from_vin,
)

VALID_VIN = "1HGCM82633A004352"


def _response(url, payload, status=200):
    return httpx.Response(status, json=payload, request=httpx.Request("GET", url))


# ── Validation ───────────────────────────────────────────────────────


class TestVinValidation:
    def test_format(self):
        assert is_valid_vin_format(VALID_VIN)
        assert is_valid_vin_format(VALID_VIN.lower())
        assert not is_valid_vin_format("1HGCM82633A00435")  # 16 chars
        assert not is_valid_vin_format("1HGCM82633A00435I")
        assert not is_valid_vin_format(None)

    def test_checksum(self):
        assert is_valid_vin_checksum(VALID_VIN)
        assert is_valid_vin_checksum("11111111111111111")
        assert not is_valid_vin_checksum("1HGCM82643A004352")

    def test_validate_reasons(self):
        assert validate_vin(VALID_VIN) == (True, None)
        assert validate_vin("ABC") == (False, "VIN must be exactly 17 characters")
        assert validate_vin("1HGCM82633A00435Q")[1].startswith("VIN contains invalid characters")
        assert validate_vin("1HGCM82643A004352") == (False, "VIN checksum is invalid")

    def test_year_from_tenth_character(self):
        assert year_from_vin("1HGCM8263KA004352") == 2019
        assert year_from_vin("1HGCM8263AA004352") == 2010
        assert year_from_vin("1HGCM8263YA004352") == 2030
        assert year_from_vin("1HGCM82631A004352") == 2031
        assert year_from_vin("1HGCM8263ZA004352") is None
        assert year_from_vin("short") is None


# ── Decoders ─────────────────────────────────────────────────────────


class TestDecoders:
    @pytest.mark.asyncio
    async def test_nhtsa_maps_variables(self):
        url = "https://vpic.example/api/vehicles/DecodeVin/" + VALID_VIN
        payload = {"Results": [
            {"Variable": "Model Year", "Value": "2003"},
            {"Variable": "Make", "Value": "HONDA"},
            {"Variable": "Model", "Value": "Accord"},
            {"Variable": "Body Class", "Value": "Coupe"},
            {"Variable": "Trim", "Value": ""},
        ]}
        mock_http = MagicMock()
        mock_http.get = AsyncMock(return_value=_response(url, payload))
        with patch("wheelsglass.http_client.http", mock_http):
            details = await NhtsaDecoder("https://vpic.example/api/vehicles/").decode(VALID_VIN)

        assert details.is_valid
        assert (details.year, details.make, details.model) == (2003, "HONDA", "Accord")
        assert details.body_type == "Coupe"
        assert details.trim is None
        assert details.source == "nhtsa"
        called_url = mock_http.get.call_args.args[0]
        assert called_url == url
        assert mock_http.get.call_args.kwargs["params"] == {"format": "json"}

    @pytest.mark.asyncio
    async def test_omega_sends_api_key(self):
        url = "https://omega.example/api/2.0/vehicles/vin/" + VALID_VIN
        mock_http = MagicMock()
        mock_http.get = AsyncMock(return_value=_response(url, {"year": "2003", "make": "Honda", "model": "Accord"}))
        decoder = OmegaEdiDecoder("secret", "https://omega.example/api/2.0")
        with patch("wheelsglass.http_client.http", mock_http):
            details = await decoder.decode(VALID_VIN)

        assert details.source == "omega_edi"
        assert details.year == 2003
        assert mock_http.get.call_args.args[0] == url
        assert mock_http.get.call_args.kwargs["headers"]["api_key"] == "secret"

    def test_omega_disabled_without_key(self):
        assert OmegaEdiDecoder("", "https://omega.example/").enabled is False

    @pytest.mark.asyncio
    async def test_http_error_propagates_after_retries(self):
        url = "https://vpic.example/DecodeVin/" + VALID_VIN
        mock_http = MagicMock()
        mock_http.get = AsyncMock(return_value=_response(url, {}, status=503))
        decoder = NhtsaDecoder("https://vpic.example")
        decoder.max_retries = 0
        with patch("wheelsglass.http_client.http", mock_http):
            with pytest.raises(httpx.HTTPStatusError):
                await decoder.decode(VALID_VIN)

    @pytest.mark.asyncio
    async def test_retry_then_success(self, make_decoder):
        decoder = make_decoder(result={"year": 2003, "make": "HONDA", "model": "Accord"})
        decoder.max_retries = 1
        calls = {"n": 0}
        real = decoder._do_decode

        async def flaky(vin):
            calls["n"] += 1
            if calls["n"] == 1:
                raise httpx.ConnectError("reset")
            return await real(vin)

        decoder._do_decode = flaky
        with patch("wheelsglass.connectors.vin_decoders.asyncio.sleep", new_callable=AsyncMock) as sleep:
            details = await decoder.decode(VALID_VIN)
        assert details.is_valid
        sleep.assert_awaited_once_with(1)


# ── Lookup service ───────────────────────────────────────────────────


class TestVinLookup:
    @pytest.mark.asyncio
    async def test_decodes_and_caches(self, make_decoder, db_session):
        decoder = make_decoder(result={"year": 2003, "make": "HONDA", "model": "Accord"})
        svc = VinLookupService([decoder])

        details = await svc.lookup(db_session, VALID_VIN.lower())
        assert details.is_valid
        row = db_session.query(VehicleLookup).one()
        assert row.vin == VALID_VIN
        assert row.is_valid is True
        assert row.lookup_source == "nhtsa"

        again = await svc.lookup(db_session, VALID_VIN)
        assert again.make == "HONDA"
        assert decoder.calls == [VALID_VIN]

    @pytest.mark.asyncio
    async def test_first_valid_decoder_wins(self, make_decoder, db_session):
        omega = make_decoder(source="omega_edi", result={"year": 2003, "make": "Honda", "model": "Accord"})
        nhtsa = make_decoder(result={"year": 2003, "make": "HONDA", "model": "ACCORD"})
        details = await VinLookupService([omega, nhtsa]).lookup(db_session, VALID_VIN)
        assert details.source == "omega_edi"
        assert nhtsa.calls == []

    @pytest.mark.asyncio
    async def test_falls_through_on_error_and_incomplete(self, make_decoder, db_session):
        broken = make_decoder(source="omega_edi", error=httpx.ConnectTimeout("slow"))
        partial = make_decoder(source="omega_edi", result={"year": 2003, "make": "Honda"})
        nhtsa = make_decoder(result={"year": 2003, "make": "HONDA", "model": "Accord"})
        details = await VinLookupService([broken, partial, nhtsa]).lookup(db_session, VALID_VIN)
        assert details.source == "nhtsa"
        assert broken.calls and partial.calls and nhtsa.calls

    @pytest.mark.asyncio
    async def test_all_fail_gives_invalid_result(self, make_decoder, db_session):
        broken = make_decoder(error=RuntimeError("down"))
        details = await VinLookupService([broken]).lookup(db_session, VALID_VIN)
        assert details.is_valid is False
        row = db_session.query(VehicleLookup).one()
        assert row.is_valid is False

    @pytest.mark.asyncio
    async def test_invalid_cache_row_is_retried(self, make_decoder, db_session):
        db_session.add(VehicleLookup(vin=VALID_VIN, is_valid=False, lookup_source="nhtsa"))
        db_session.commit()
        decoder = make_decoder(result={"year": 2003, "make": "HONDA", "model": "Accord"})

        details = await VinLookupService([decoder]).lookup(db_session, VALID_VIN)
        assert details.is_valid
        assert decoder.calls == [VALID_VIN]
        row = db_session.query(VehicleLookup).one()
        assert row.is_valid is True
        assert row.model == "Accord"

    @pytest.mark.asyncio
    async def test_cache_hit_touches_last_used(self, db_session):
        old = datetime(2020, 1, 1, tzinfo=timezone.utc)
        db_session.add(VehicleLookup(
            vin=VALID_VIN, year=2003, make="HONDA", model="Accord",
            is_valid=True, lookup_source="omega_edi", last_used=old,
        ))
        db_session.commit()

        details = await VinLookupService([]).lookup(db_session, VALID_VIN)
        assert details.source == "omega_edi"
        row = db_session.query(VehicleLookup).one()
        assert row.last_used > old

    @pytest.mark.asyncio
    async def test_disabled_decoder_skipped(self, db_session):
        decoder = OmegaEdiDecoder("", "https://omega.example/")
        details = await VinLookupService([decoder]).lookup(db_session, VALID_VIN)
        assert details == VehicleDetails(vin=VALID_VIN, source="manual")

    @pytest.mark.asyncio
    async def test_malformed_vin_not_decoded_or_cached(self, make_decoder, db_session):
        decoder = make_decoder(result={"year": 2003, "make": "HONDA", "model": "Accord"})
        details = await VinLookupService([decoder]).lookup(db_session, "NOT-A-VIN")
        assert details.is_valid is False
        assert decoder.calls == []
        assert db_session.query(VehicleLookup).count() == 0


class TestVinEndpoint:
    def test_lookup_reports_validation_and_vehicle(self, make_decoder, client):
        from wheelsglass.dependencies import get_vin_lookup
        from wheelsglass.main import app

        decoder = make_decoder(result={"year": 2003, "make": "HONDA", "model": "Accord"})
        app.dependency_overrides[get_vin_lookup] = lambda: VinLookupService([decoder])

        body = client.get(f"/api/vin/{VALID_VIN.lower()}").json()
        assert body["vin"] == VALID_VIN
        assert body["validation"] == {"valid": True, "reason": None, "yearFromVin": 2033}
        assert body["vehicle"]["make"] == "HONDA"
        assert body["vehicle"]["is_valid"] is True

    def test_bad_checksum_still_attempts_decode(self, client):
        body = client.get("/api/vin/1HGCM82643A004352").json()
        assert body["validation"]["valid"] is False
        assert body["validation"]["reason"] == "VIN checksum is invalid"
        assert body["vehicle"] is None

    def test_requires_auth(self, anon_client):
        assert anon_client.get(f"/api/vin/{VALID_VIN}").status_code == 401
