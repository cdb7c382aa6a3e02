# Insert a sample dealership with auto-close switched on
from sqlmodel import Session, SQLModel, select

from db.session import engine
from models.dealership import Dealership
from models.setting import Setting, SettingType
from services.settings_service import AUTO_CLOSE_SHIFTS


def seed_dealerships():
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        # Check if the dealership already exists to avoid duplicates
        existing = session.get(Dealership, "TASHKENT")

        if not existing:
            session.add(Dealership(id="TASHKENT", name="Tashkent", timezone="Asia/Tashkent"))
            print("Added TASHKENT dealership")
        else:
            print("TASHKENT dealership already exists")

        setting = session.exec(
            select(Setting)
            .where(Setting.key == AUTO_CLOSE_SHIFTS)
            .where(Setting.dealership_id == "TASHKENT")
        ).first()

        if not setting:
            session.add(
                Setting(
                    key=AUTO_CLOSE_SHIFTS,
                    dealership_id="TASHKENT",
                    type=SettingType.BOOLEAN,
                    value="1",
                )
            )
            print("Enabled auto_close_shifts for TASHKENT")

        session.commit()


if __name__ == "__main__":
    seed_dealerships()
