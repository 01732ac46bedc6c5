"""
易支付（V1 接口）工具类

签名规则：去掉 sign / sign_type 和空值参数，按参数名 ASCII 升序拼接为
key1=value1&key2=value2，末尾直接追加商户密钥，取 MD5 小写十六进制
"""
import hashlib
import hmac
import json
import random
import time
from typing import Any, Dict, List, Optional

import httpx

from imagegen.common.config import config, EpayConfig, PaymentConfig
from imagegen.common.exception.exception import ExternalServiceException, SignatureInvalidException
from imagegen.core.logger_util import logger


class EpayUtils:
    """易支付接口封装"""

    SIGN_EXCLUDED_KEYS = ("sign", "sign_type")
    TRADE_SUCCESS = "TRADE_SUCCESS"

    def __init__(self, epay_config: EpayConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = epay_config
        # 测试时可注入 httpx.MockTransport
        self.transport = transport

    # ==================== 签名 ====================

    def generate_sign(self, params: Dict[str, Any]) -> str:
        filtered = {
            k: v for k, v in params.items()
            if k not in self.SIGN_EXCLUDED_KEYS and v is not None and v != ""
        }
        sign_str = "&".join(f"{k}={filtered[k]}" for k in sorted(filtered)) + self.config.key
        logger.debug(f"易支付签名字符串: {sign_str}")
        return hashlib.md5(sign_str.encode("utf-8")).hexdigest()

    def verify_notify(self, notify_data: Dict[str, Any]) -> bool:
        """
        验证异步通知签名，缺少 sign 直接判定失败
        """
        sign = notify_data.get("sign")
        if not sign or not isinstance(sign, str):
            return False
        expected = self.generate_sign(notify_data)
        return hmac.compare_digest(expected, sign.lower())

    def check_notify(self, notify_data: Dict[str, Any]):
        """
        校验异步通知：签名正确且商户号一致
        :raises SignatureInvalidException:
        """
        if not self.verify_notify(notify_data):
            raise SignatureInvalidException("易支付通知签名验证失败")
        if str(notify_data.get("pid", "")) != self.config.pid:
            raise SignatureInvalidException("易支付通知商户号不匹配")

    # ==================== 下单 / 查询 ====================

    def ensure_available(self):
        if not self.config.enabled:
            raise ExternalServiceException("易支付功能未启用")
        if not self.config.is_complete:
            raise ExternalServiceException("易支付配置不完整，请配置商户ID、密钥和API地址")

    async def _post_form(self, path: str, data: Dict[str, Any], timeout: float) -> httpx.Response:
        url = f"{self.config.api_url.rstrip('/')}/{path}"
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        }
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                response = await client.post(url, data=data, headers=headers)
            response.raise_for_status()
            return response
        except httpx.TimeoutException as e:
            logger.error(f"❌ 易支付请求超时: {url}, 错误: {e}")
            raise ExternalServiceException("支付网关请求超时")
        except httpx.HTTPStatusError as e:
            logger.error(f"❌ 易支付请求失败: {url}, HTTP {e.response.status_code}, 响应: {e.response.text}")
            raise ExternalServiceException(f"支付网关请求失败: HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            logger.error(f"❌ 易支付请求失败: {url}, 错误: {e}")
            raise ExternalServiceException(f"支付网关请求失败: {e}")

    async def create_order(
            self,
            pay_type: str,
            out_trade_no: str,
            name: str,
            money: str,
            clientip: str = "127.0.0.1",
            notify_url: Optional[str] = None,
            return_url: Optional[str] = None,
            param: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        创建支付订单（mapi.php）
        :return: 网关返回的结果，包含 trade_no / payurl / qrcode 等字段
        """
        self.ensure_available()
        order_params = {
            "pid": self.config.pid,
            "type": pay_type,
            "out_trade_no": out_trade_no,
            "notify_url": notify_url or self.config.notify_url,
            "return_url": return_url or self.config.return_url,
            "name": name,
            "money": money,
            "clientip": clientip,
            "param": param,
        }
        order_params = {k: v for k, v in order_params.items() if v not in (None, "")}
        order_params["sign"] = self.generate_sign(order_params)
        order_params["sign_type"] = "MD5"

        logger.info(f"易支付创建订单 - 订单号: {out_trade_no}, 金额: {money}, 方式: {pay_type}")
        response = await self._post_form("mapi.php", order_params, self.config.timeout)
        result = self._parse_create_response(response.text)

        if str(result.get("code")) != "1":
            logger.error(f"❌ 易支付创建订单失败 - 订单号: {out_trade_no}, 响应: {result}")
            raise ExternalServiceException(result.get("msg") or "创建支付订单失败")

        logger.info(f"✅ 易支付创建订单成功 - 订单号: {out_trade_no}, 网关单号: {result.get('trade_no')}")
        return result

    @staticmethod
    def _parse_create_response(text: str) -> Dict[str, Any]:
        """
        网关可能返回 JSON，也可能直接返回支付链接
        """
        text = text.strip()
        try:
            result = json.loads(text)
        except ValueError:
            if text.startswith("http"):
                return {"code": 1, "msg": "success", "payurl": text}
            raise ExternalServiceException(f"支付网关返回格式错误: {text[:200]}")
        if not isinstance(result, dict):
            raise ExternalServiceException(f"支付网关返回格式错误: {text[:200]}")
        return result

    async def query_order(self, out_trade_no: str) -> Dict[str, Any]:
        """
        查询订单状态（api.php）
        """
        self.ensure_available()
        params = {
            "pid": self.config.pid,
            "out_trade_no": out_trade_no,
        }
        params["sign"] = self.generate_sign(params)
        params["sign_type"] = "MD5"

        response = await self._post_form("api.php", params, self.config.query_timeout)
        try:
            return response.json()
        except ValueError:
            raise ExternalServiceException(f"支付网关返回格式错误: {response.text[:200]}")

    # ==================== 辅助 ====================

    @staticmethod
    def generate_order_no() -> str:
        """
        生成商户订单号：EP + 毫秒时间戳 + 3位随机数
        """
        return f"EP{int(time.time() * 1000)}{random.randint(0, 999):03d}"

    @staticmethod
    def get_payment_methods(payment_config: PaymentConfig, epay_config: EpayConfig) -> List[Dict[str, str]]:
        """
        根据配置返回可用的支付方式
        第三方支付方式只有在易支付启用且配置完整时才返回
        """
        methods = []
        if payment_config.balance_enabled:
            methods.append({
                "type": "balance",
                "name": "账户余额",
                "icon": "💰",
                "description": "使用账户余额支付",
            })
        if epay_config.is_complete:
            if payment_config.wxpay_enabled:
                methods.append({
                    "type": "wxpay",
                    "name": "微信支付",
                    "icon": "💚",
                    "description": "使用微信扫码支付",
                })
            if payment_config.alipay_enabled:
                methods.append({
                    "type": "alipay",
                    "name": "支付宝",
                    "icon": "💙",
                    "description": "使用支付宝扫码支付",
                })
        return methods


epay_utils = EpayUtils(config.epay)
