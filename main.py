"""codeloop CLI."""

import json
import logging
import sys

from codeloop.agent import AgentConfig, AgentResult, create_agent
from codeloop.errors import AgentError


def print_plan(result: AgentResult) -> None:
    """계획 출력."""
    plan = result.plan
    print("📋 Plan:")
    if plan.reasoning:
        print(f"   {plan.reasoning}")
    if not plan.steps:
        print("   (실행할 스텝 없음)")
    for i, step in enumerate(plan.steps, 1):
        print(f"   {i}. [{step.tool}] {step.description}")
        print(f"      {json.dumps(step.params, ensure_ascii=False)}")


def print_summary(result: AgentResult) -> None:
    """실행 결과 요약 출력."""
    for step in result.steps:
        icon = {"completed": "✅", "failed": "❌"}.get(step.status.value, "⏸️")
        print(f"{icon} {step.id}: {step.description}")

    if result.files_modified:
        print("\n📝 Files modified:")
        for path in result.files_modified:
            print(f"   - {path}")

    if result.commands_run:
        print("\n🔧 Commands run:")
        for record in result.commands_run:
            print(f"   $ {record.command} (exit {record.exit_code})")

    print(f"\nCompleted: {len(result.completed_steps)}, Failed: {len(result.failed_steps)}")


def run_agent(goal: str, autonomous: bool = False, auto_approve: bool = False) -> AgentResult | None:
    """Preview → 승인 → Apply.

    Args:
        goal: 사용자 목표
        autonomous: 실패한 step이 있어도 계속 진행
        auto_approve: 승인 질문 없이 바로 적용

    Returns:
        실행 결과, 사용자가 승인하지 않으면 None
    """
    agent = create_agent(AgentConfig(autonomous=autonomous, preview_mode=True))

    preview = agent.preview(goal)
    print_plan(preview)

    if not auto_approve:
        answer = input("\nApply this plan? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Plan discarded.")
            return None

    print("\n[실행 중...]\n")
    result = agent.apply(goal, plan=preview.plan)
    print_summary(result)
    return result


def setup_logging(verbose: bool):
    """로깅 설정."""
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # httpx 로그 비활성화 (HTTP Request: POST ... 메시지)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def main():
    """CLI 메인 함수."""
    verbose = "--verbose" in sys.argv or "-v" in sys.argv
    autonomous = "--autonomous" in sys.argv or "-a" in sys.argv

    setup_logging(verbose)

    print("=" * 50)
    print("codeloop: plan, preview, apply")
    if verbose:
        print("🔍 Verbose mode ON")
    if autonomous:
        print("🤖 Autonomous mode ON")
    print("=" * 50)
    print("종료: 'quit' 또는 'exit'")
    print()

    while True:
        try:
            goal = input("Goal: ").strip()

            if not goal:
                continue

            if goal.lower() in ("quit", "exit"):
                print("Goodbye!")
                break

            # /verbose 명령으로 토글
            if goal.lower() == "/verbose":
                verbose = not verbose
                logging.getLogger().setLevel(logging.INFO if verbose else logging.WARNING)
                print(f"Verbose mode: {'ON' if verbose else 'OFF'}")
                continue

            # /autonomous 명령으로 토글
            if goal.lower() == "/autonomous":
                autonomous = not autonomous
                print(f"Autonomous mode: {'ON' if autonomous else 'OFF'}")
                continue

            print("\n[계획 중...]\n")
            run_agent(goal, autonomous=autonomous)
            print()

        except AgentError as e:
            print(f"\n⚠️  Error: {e}")
            if e.result is not None:
                print_summary(e.result)
            print()
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except Exception as e:
            print(f"\n오류 발생: {e}\n")


if __name__ == "__main__":
    main()
