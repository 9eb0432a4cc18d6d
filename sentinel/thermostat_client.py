"""
Thermostat web service client.

Drives the thermostat through the utility's consumer web portal the same way
the browser does: a form login that hands back a session cookie, then a
"manual" form post that sets the hold temperature and mode.
"""

import aiohttp
import asyncio
import logging
from typing import Optional, Dict

from .config import ThermostatConfig
from .exceptions import ThermostatError
from .models import Mode, Setting

logger = logging.getLogger(__name__)


class ThermostatClient:
    """Client for the thermostat web portal."""

    def __init__(self, config: ThermostatConfig):
        self.config = config
        self._cookie: Optional[str] = None
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            # The cookie is managed by hand; the jar would resend it a second time
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout_seconds),
                cookie_jar=aiohttp.DummyCookieJar(),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    def _url(self, path: str) -> str:
        return self.config.base_url.rstrip("/") + "/" + path.lstrip("/")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if self._cookie:
            headers["Cookie"] = self._cookie
        return headers

    async def _post(self, path: str, form: Dict[str, str]) -> aiohttp.ClientResponse:
        session = await self._get_session()
        try:
            async with session.post(
                self._url(path),
                data=form,
                headers=self._headers(),
                allow_redirects=False,
                ssl=self.config.verify_ssl,
            ) as resp:
                if resp.status >= 400:
                    text = await resp.text(errors="replace")
                    raise ThermostatError(f"POST {path} failed: {resp.status} - {text[:200]}")
                await resp.read()
                return resp
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ThermostatError(f"POST {path} failed: {e!r}") from e

    async def authenticate(self):
        """Log in to the portal and keep the session cookie."""
        logger.debug(f"Authenticating as {self.config.username}")
        resp = await self._post(self.config.login_path, {
            "USERNAME": self.config.username,
            "PASSWORD": self.config.password,
            "ACTION": "LOGIN",
            "login": "Submit",
        })

        cookie = None
        for header in resp.headers.getall("Set-Cookie", []):
            # Last cookie wins, same as the portal's own login page
            value = header.split(";", 1)[0].strip()
            if value:
                cookie = value

        if not cookie:
            raise ThermostatError(f"Login failed: no session cookie in response ({resp.status})")

        self._cookie = cookie
        logger.info("Authenticated with thermostat portal")

    def _command_form(self, setting: Setting) -> Dict[str, str]:
        ids = ",".join(str(i) for i in self.config.thermostat_ids)
        return {
            "accountId": "",
            "thermostatIds": f"[{ids}]",
            "fan": "AUTO",
            "temperature": setting.display_temperature,
            "temperatureUnit": "C",
            "mode": setting.mode.value,
            "hold": "true",
        }

    async def change_hold_setting(self, setting: Setting):
        """Set the thermostat's hold temperature and mode.

        OFF is sent a second time after off_resend_delay_seconds because the
        portal does not always pass the first one on to the thermostat.

        Raises:
            ThermostatError: if the login or any command fails.
        """
        if self._cookie is None:
            await self.authenticate()

        form = self._command_form(setting)
        await self._post(self.config.adjust_path, form)
        logger.info(f"Thermostat hold setting sent: {setting}")

        if setting.mode == Mode.OFF:
            await asyncio.sleep(self.config.off_resend_delay_seconds)
            await self._post(self.config.adjust_path, form)
            logger.info(f"Thermostat OFF re-sent after {self.config.off_resend_delay_seconds}s")
