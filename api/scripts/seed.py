import argparse
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from chessnkaffe import repo
from chessnkaffe.auth.security import hash_password
from chessnkaffe.http_helpers import PRONOUN_OPTIONS, TIME_OPTIONS
from chessnkaffe.records import UserPreference
from chessnkaffe.services.chess_ratings import MANUAL_LEVEL_RATINGS, normalize_chess_experience
from chessnkaffe.services.connections import local_today
from chessnkaffe.services.geo import AREAS

ALIASES = [
    "Rook Rasmus", "Bishop Birgitte", "Knight Nanna", "Pawnstorm Per", "Castling Camille",
    "Gambit Gustav", "Endgame Emma", "Zugzwang Zainab", "Fianchetto Frida", "Sicilian Søren",
]


def _random_window(rng: random.Random) -> tuple[str, str]:
    start = rng.randrange(0, len(TIME_OPTIONS) - 4)
    end = rng.randrange(start + 2, min(start + 9, len(TIME_OPTIONS)))
    return TIME_OPTIONS[start], TIME_OPTIONS[end]


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo ChessnKaffe players")
    parser.add_argument("--n-users", type=int, default=len(ALIASES))
    parser.add_argument("--password", type=str, default="kaffe123")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    rng = random.Random(args.seed)
    today = local_today(datetime.now(timezone.utc))
    password_hash = hash_password(args.password)
    created = skipped = 0

    for i in range(args.n_users):
        alias = ALIASES[i % len(ALIASES)] + ("" if i < len(ALIASES) else f" {i}")
        email = f"player{i + 1}@chessnkaffe.dk"
        user = repo.create_user(email, password_hash, alias=alias)
        if user is None:
            skipped += 1
            continue

        experience = normalize_chess_experience({"manual": {"level": rng.choice(list(MANUAL_LEVEL_RATINGS))}})
        repo.update_user_profile(
            str(user["id"]),
            alias=alias,
            pronoun=rng.choice(PRONOUN_OPTIONS),
            queer=rng.choice([True, False, None]),
            chess_experience=experience,
            average_rating=experience["average_rating"],
        )
        start_time, end_time = _random_window(rng)
        dates = sorted({today + timedelta(days=rng.randrange(0, 14)) for _ in range(rng.randint(1, 4))})
        repo.put_user_preference(
            str(user["id"]),
            UserPreference(
                user_id=str(user["id"]),
                areas=tuple(rng.sample(AREAS, rng.randint(1, 3))),
                dates=tuple(dates),
                start_time=start_time,
                end_time=end_time,
            ),
        )
        created += 1

    print("Seed completed")
    print(f"- created: {created}")
    print(f"- skipped (email taken): {skipped}")
    print(f"- password: {args.password}")


if __name__ == "__main__":
    main()
