import hashlib
from decimal import Decimal

import httpx
import pytest

from imagegen.common.config import EpayConfig, PaymentConfig
from imagegen.common.exception.exception import ExternalServiceException, SignatureInvalidException
from imagegen.common.utils import EpayUtils

EPAY_CONFIG = EpayConfig(
    enabled=True,
    pid="1001",
    key="k",
    api_url="https://pay.example.com/",
    notify_url="https://api.example.com/api/payment/notify",
    return_url="https://api.example.com/api/payment/return",
)


def _utils(handler=None) -> EpayUtils:
    transport = httpx.MockTransport(handler) if handler else None
    return EpayUtils(EPAY_CONFIG, transport=transport)


def test_generate_sign_sorts_fields_and_appends_key():
    sign = _utils().generate_sign({"out_trade_no": "EP1", "money": "10.00"})
    assert sign == hashlib.md5("money=10.00&out_trade_no=EP1k".encode("utf-8")).hexdigest()


def test_generate_sign_skips_empty_and_sign_fields():
    utils = _utils()
    expected = utils.generate_sign({"money": "10.00", "out_trade_no": "EP1"})
    assert utils.generate_sign({
        "money": "10.00",
        "out_trade_no": "EP1",
        "param": "",
        "name": None,
        "sign": "abc",
        "sign_type": "MD5",
    }) == expected


def test_verify_notify():
    utils = _utils()
    data = {"out_trade_no": "EP1", "money": "10.00", "trade_status": "TRADE_SUCCESS"}
    data["sign"] = utils.generate_sign(data)

    assert utils.verify_notify(data) is True
    assert utils.verify_notify({**data, "sign": data["sign"].upper()}) is True
    assert utils.verify_notify({**data, "money": "0.01"}) is False
    assert utils.verify_notify({**data, "sign": ""}) is False
    assert utils.verify_notify({k: v for k, v in data.items() if k != "sign"}) is False


def test_check_notify_requires_own_merchant_id():
    utils = _utils()
    data = {"pid": "1001", "out_trade_no": "EP1", "money": "10.00"}
    utils.check_notify({**data, "sign": utils.generate_sign(data)})

    other = {**data, "pid": "2002"}
    with pytest.raises(SignatureInvalidException):
        utils.check_notify({**other, "sign": utils.generate_sign(other)})
    with pytest.raises(SignatureInvalidException):
        utils.check_notify({**data, "sign": "0" * 32})


async def test_create_order_posts_signed_form():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["form"] = dict(httpx.QueryParams(request.content.decode()))
        return httpx.Response(200, json={"code": 1, "trade_no": "2024000001", "payurl": "https://pay/1"})

    utils = _utils(handler)
    result = await utils.create_order("alipay", "EP1", "充值服务", "10.00", clientip="10.0.0.1")

    assert result["trade_no"] == "2024000001"
    assert captured["url"] == "https://pay.example.com/mapi.php"
    form = captured["form"]
    assert form["pid"] == "1001"
    assert form["type"] == "alipay"
    assert form["sign_type"] == "MD5"
    assert form["notify_url"] == EPAY_CONFIG.notify_url
    assert utils.verify_notify(form) is True


async def test_create_order_accepts_bare_url_response():
    utils = _utils(lambda request: httpx.Response(200, text="https://pay.example.com/submit?id=1"))

    result = await utils.create_order("wxpay", "EP2", "充值服务", "1.00")

    assert result["payurl"] == "https://pay.example.com/submit?id=1"


@pytest.mark.parametrize("response", [
    httpx.Response(200, json={"code": -1, "msg": "商户不存在"}),
    httpx.Response(502, text="bad gateway"),
    httpx.Response(200, text="<html>error</html>"),
])
async def test_create_order_failures(response):
    utils = _utils(lambda request: response)

    with pytest.raises(ExternalServiceException):
        await utils.create_order("alipay", "EP3", "充值服务", "1.00")


async def test_create_order_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ExternalServiceException) as exc_info:
        await _utils(handler).create_order("alipay", "EP4", "充值服务", "1.00")
    assert exc_info.value.status_code == 502


async def test_create_order_requires_complete_config():
    utils = EpayUtils(EpayConfig(enabled=True, pid="1001"))

    with pytest.raises(ExternalServiceException):
        await utils.create_order("alipay", "EP5", "充值服务", "1.00")


async def test_query_order():
    utils = _utils(lambda request: httpx.Response(200, json={"code": 1, "status": 1, "money": "10.00"}))

    result = await utils.query_order("EP1")

    assert result["status"] == 1


def test_generate_order_no():
    order_no = EpayUtils.generate_order_no()
    assert order_no.startswith("EP")
    assert order_no[2:].isdigit()
    assert len(order_no) == 18


def test_payment_methods_follow_config():
    methods = EpayUtils.get_payment_methods(PaymentConfig(), EPAY_CONFIG)
    assert [m["type"] for m in methods] == ["balance", "wxpay", "alipay"]

    methods = EpayUtils.get_payment_methods(
        PaymentConfig(balance_enabled=False, max_amount=Decimal("1")), EpayConfig())
    assert methods == []
