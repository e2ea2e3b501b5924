"""One-time DB setup: create tables and seed a demo teacher, student, class and quiz."""
from quizassist.db.session import Base, get_engine, get_session_factory
from quizassist.db.models import (
    AssistanceLevel1,
    AssistanceLevel1Question,
    AssistanceLevel2,
    AssistanceLevel2Question,
    AssistanceLevel3,
    ClassEnrollment,
    Classroom,
    Question,
    Quiz,
    RoleEnum,
    User,
)
from quizassist.core.security import hash_password


def _user(db, email: str, password: str, full_name: str, role: RoleEnum) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        print(f"  {email} already exists")
        return user
    user = User(
        email=email,
        hashed_password=hash_password(password),
        full_name=full_name,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"✅ Created {role.value}: {email} / {password}")
    return user


# 1. Create all tables
engine = get_engine()
Base.metadata.create_all(bind=engine)
print("✅ All tables created")

session_factory = get_session_factory()
with session_factory() as db:
    # 2. Demo accounts
    teacher = _user(db, "teacher@example.com", "teacher123", "Demo Teacher", RoleEnum.TEACHER)
    student = _user(db, "student@example.com", "student123", "Demo Student", RoleEnum.STUDENT)

    # 3. Class with the student enrolled
    klass = db.query(Classroom).filter(
        Classroom.teacher_id == teacher.id, Classroom.name == "Demo Class"
    ).first()
    if not klass:
        klass = Classroom(name="Demo Class", description="Seeded class", teacher_id=teacher.id)
        klass.enrollments = [ClassEnrollment(student_id=student.id)]
        db.add(klass)
        db.commit()
        db.refresh(klass)
        print(f"✅ Created class (id={klass.id})")
    else:
        print("  Demo class already exists")

    # 4. Quiz with all three assistance levels
    quiz = db.query(Quiz).filter(Quiz.class_id == klass.id, Quiz.title == "General Knowledge").first()
    if not quiz:
        quiz = Quiz(
            title="General Knowledge",
            description="Three short questions",
            class_id=klass.id,
            teacher_id=teacher.id,
        )
        quiz.questions = [
            Question(position=0, text="What is 2 + 2?", expected_answer="4"),
            Question(position=1, text="Capital of France?", expected_answer="Paris"),
            Question(position=2, text="Planet closest to the sun?", expected_answer="Mercury"),
        ]
        quiz.assistance_level1 = AssistanceLevel1(
            title="Quick recap",
            questions=[
                AssistanceLevel1Question(
                    position=0,
                    statement="Venus is the planet closest to the sun.",
                    correct_answer=False,
                    explanation="Mercury orbits closest to the sun.",
                ),
                AssistanceLevel1Question(
                    position=1,
                    statement="Paris is the capital of France.",
                    correct_answer=True,
                ),
            ],
        )
        quiz.assistance_level2 = AssistanceLevel2(
            title="Explain it",
            questions=[
                AssistanceLevel2Question(
                    position=0,
                    question="Why is Mercury the hottest planet by day?",
                    hint="Think about distance to the sun.",
                    correct_answer="It is the closest planet to the sun.",
                ),
            ],
        )
        quiz.assistance_level3 = AssistanceLevel3(
            title="Reading: the solar system",
            pdf_url="/api/uploads/solar-system.pdf",
        )
        db.add(quiz)
        db.commit()
        print(f"✅ Created quiz (id={quiz.id})")
    else:
        print("  Demo quiz already exists")

print("\n🎉 Seed complete!")
