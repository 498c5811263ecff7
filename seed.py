from mapto.config import get_settings
from mapto.store import build_repository

settings = get_settings()

if settings.store_backend == "memory":
    raise SystemExit("Seeding the memory store does nothing; set MAPTO_STORE_BACKEND=json or sql")

repository = build_repository(settings)

# Sample posts around Tokyo Station
posts = [
    {"lat": 35.6812, "lng": 139.7671, "text": "駅前のイルミネーションがきれい", "mood": "✨"},
    {"lat": 35.6852, "lng": 139.7528, "text": "皇居ランナーが多い朝", "mood": "🏃"},
    {"lat": 35.6717, "lng": 139.7650, "text": "銀座で美味しいパン屋を発見"},
    {"lat": 35.6896, "lng": 139.7006, "mood": "☔"},
    {"lat": 35.6586, "lng": 139.7454, "text": "東京タワーがよく見える"},
]

created = [repository.create(post) for post in posts]
repository.close()

print("Post store seeded successfully!")
print(f"  - backend: {repository.name}")
print(f"  - {len(created)} posts")
