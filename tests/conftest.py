"""Shared fixtures: a tiny raw catalog and a scriptable generative backend."""

import pytest

from car_navigator.catalog import Catalog
from car_navigator.models import BackendResponse


PRIUS = {
    "code": "T001",
    "maker_name": "トヨタ",
    "car_model_name": "プリウス",
    "grade1": "S",
    "model_year": "2019",
    "mileage": 42000,
    "total_price_show": "180万円",
    "engine_type": "ハイブリッド",
    "displacement": 1800,
    "door": 5,
    "person": 5,
    "equip_names": ["運転席エアバッグ", "ABS", "横滑り防止装置", "衝突被害軽減システム"],
    "body_type_name": "ハッチバック",
}

FIT = {
    "code": "H001",
    "maker_name": "ホンダ",
    "car_model_name": "フィット",
    "model_year": "2016",
    "mileage": 68000,
    "total_price_show": "90万円",
    "photo_files": ["https://img.example.com/fit.jpg"],
    "engine_type": "ガソリン",
    "displacement": 1300,
    "door": 5,
    "person": 5,
    "equip_names": ["キーレス"],
    "body_type_name": "コンパクトカー",
}

SERENA = {
    "code": "N001",
    "maker_name": "日産",
    "car_model_name": "セレナ",
    "model_year": "2021",
    "mileage": 12000,
    "total_price_show": "250.5万円",
    "engine_type": "ガソリン",
    "displacement": 2000,
    "door": 5,
    "person": 8,
    "equip_names": ["エアバッグ"],
    "body_type_name": "ミニバン・ワンボックス",
}


class FakeBackend:
    """Generative backend stub that records calls."""

    def __init__(self, response=None, error: Exception | None = None, delay: float = 0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, list]] = []
        self.points = ["燃費が良い", "広い室内", "先進安全装備"]

    async def generate(self, prompt, history):
        import asyncio

        self.calls.append((prompt, list(history)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response

    async def selling_points(self, vehicle):
        return list(self.points)


def backend_cars_payload(message: str = "こちらはいかがでしょう") -> BackendResponse:
    return BackendResponse.model_validate(
        {
            "responseType": "CAR_RESULTS",
            "message": message,
            "cars": [
                {
                    "name": "マツダ ロードスター RS",
                    "year": 2020,
                    "mileage": 10000,
                    "price": 250,
                    "imageUrl": "https://picsum.photos/seed/abc/800/600",
                    "specs": {"engine": "1500cc ガソリン", "size": "3915x1735x1235", "safety": "i-ACTIVSENSE"},
                }
            ],
            "quickReplies": ["詳細を見る", "比較する"],
        }
    )


@pytest.fixture
def raw_records():
    return [dict(PRIUS), dict(FIT), dict(SERENA)]


@pytest.fixture
def catalog(raw_records):
    return Catalog(raw_records)
