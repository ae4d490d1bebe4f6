"""SES notifier unit testleri."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from stockledger.models.inventory import NotificationKind, NotificationPayload
from stockledger.services.exceptions import NotificationDeliveryError
from stockledger.services.notifier import SesNotifier


def _payload() -> NotificationPayload:
    return NotificationPayload(
        kind=NotificationKind.STOCK_ALERT,
        subject="Düşük Stok Uyarısı: 1 kalem ilgi bekliyor",
        html_body="<p>x</p>",
        text_body="x",
        sections={"critical": [], "warning": []},
        total_count=1,
    )


class TestSesNotifier:
    def test_deliver_returns_message_id(self):
        ses = MagicMock()
        ses.send_email.return_value = {"MessageId": "msg-1"}
        notifier = SesNotifier("stok@garaj.com", ses_client=ses)

        assert notifier.deliver(_payload(), "usta@garaj.com") == "msg-1"
        kwargs = ses.send_email.call_args.kwargs
        assert kwargs["Source"] == "stok@garaj.com"
        assert kwargs["Destination"] == {"ToAddresses": ["usta@garaj.com"]}
        assert kwargs["Message"]["Body"]["Html"]["Data"] == "<p>x</p>"
        assert kwargs["Message"]["Body"]["Text"]["Data"] == "x"

    def test_client_error_raises_delivery_error(self):
        ses = MagicMock()
        ses.send_email.side_effect = ClientError(
            {"Error": {"Code": "MessageRejected", "Message": "Email address is not verified"}},
            "SendEmail",
        )
        notifier = SesNotifier("stok@garaj.com", ses_client=ses)
        with pytest.raises(NotificationDeliveryError) as exc:
            notifier.deliver(_payload(), "usta@garaj.com")
        assert exc.value.recipient == "usta@garaj.com"

    def test_empty_recipient(self):
        ses = MagicMock()
        with pytest.raises(NotificationDeliveryError):
            SesNotifier("stok@garaj.com", ses_client=ses).deliver(_payload(), "")
        ses.send_email.assert_not_called()

    def test_sender_required(self):
        with pytest.raises(ValueError):
            SesNotifier("", ses_client=MagicMock())
