"""
tests/test_cogs.py — Cog Routing Tests
=======================================

The cogs are thin: they gate on channel and author, wait for the ledger,
and hand off to PointsService.  These tests drive them with a mocked bot.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import run_async

from pointkeeper.bot.cogs.admin import Admin, is_admin
from pointkeeper.bot.cogs.catalog import CatalogPosts
from pointkeeper.bot.cogs.meta import Meta
from pointkeeper.bot.cogs.reactions import Reactions
from pointkeeper.engine.errors import BootstrapCorruption
from pointkeeper.services.bootstrap import BootstrapReport
from pointkeeper.services.messaging import PayloadReaction

TASKS, REWARDS, USERS, OTHER = 20, 30, 40, 50
BOT_ID = 999
ADMIN_ROLE = 10


def _make_bot(**cfg_overrides) -> MagicMock:
    cfg = SimpleNamespace(
        tasks_channel_id=TASKS,
        rewards_channel_id=REWARDS,
        users_channel_id=USERS,
        admin_role_id=ADMIN_ROLE,
        bot_prefix="!",
        currency_name="AP",
        balance_reply="private",
    )
    for key, value in cfg_overrides.items():
        setattr(cfg, key, value)

    bot = MagicMock()
    bot.cfg = cfg
    bot.user = SimpleNamespace(id=BOT_ID)
    bot.wait_until_ledger_ready = AsyncMock()
    bot.points = MagicMock()
    bot.points.earn = AsyncMock()
    bot.points.spend = AsyncMock()
    bot.points.reload = AsyncMock()
    bot.points.reconciler.notify = AsyncMock(return_value=True)
    return bot


def _payload(channel_id, *, user_id=111, message_id=7, member=None):
    return SimpleNamespace(
        channel_id=channel_id,
        message_id=message_id,
        user_id=user_id,
        member=member,
        emoji="👍",
    )


def _message(channel_id, content, *, author_bot=False, message_id=70):
    return SimpleNamespace(
        id=message_id,
        content=content,
        channel=SimpleNamespace(id=channel_id, name="tasks"),
        author=SimpleNamespace(id=111, bot=author_bot),
    )


def _ctx(bot, *, roles=()):
    return SimpleNamespace(
        bot=bot,
        author=SimpleNamespace(id=111, roles=list(roles)),
        send=AsyncMock(),
        reply=AsyncMock(),
    )


# ---------------------------------------------------------------------------
# Reactions
# ---------------------------------------------------------------------------
class TestReactionRouting:
    def test_task_reaction_earns(self):
        bot = _make_bot()
        run_async(Reactions(bot).on_raw_reaction_add(_payload(TASKS)))

        bot.wait_until_ledger_ready.assert_awaited_once()
        trigger, user, reaction = bot.points.earn.await_args.args
        assert (trigger, user) == (7, 111)
        assert isinstance(reaction, PayloadReaction)
        bot.points.spend.assert_not_awaited()

    def test_reward_reaction_spends(self):
        bot = _make_bot()
        run_async(Reactions(bot).on_raw_reaction_add(_payload(REWARDS)))

        assert bot.points.spend.await_args.args[:2] == (7, 111)
        bot.points.earn.assert_not_awaited()

    @pytest.mark.parametrize("channel_id", [USERS, OTHER])
    def test_other_channels_ignored(self, channel_id):
        bot = _make_bot()
        run_async(Reactions(bot).on_raw_reaction_add(_payload(channel_id)))

        bot.points.earn.assert_not_awaited()
        bot.points.spend.assert_not_awaited()
        bot.wait_until_ledger_ready.assert_not_awaited()

    def test_own_reaction_ignored(self):
        bot = _make_bot()
        run_async(Reactions(bot).on_raw_reaction_add(_payload(TASKS, user_id=BOT_ID)))
        bot.points.earn.assert_not_awaited()

    def test_other_bots_ignored(self):
        bot = _make_bot()
        payload = _payload(REWARDS, member=SimpleNamespace(bot=True))
        run_async(Reactions(bot).on_raw_reaction_add(payload))
        bot.points.spend.assert_not_awaited()

    def test_handler_errors_are_logged_not_raised(self, caplog):
        bot = _make_bot()
        bot.points.earn.side_effect = RuntimeError("boom")

        run_async(Reactions(bot).on_raw_reaction_add(_payload(TASKS)))

        assert "Error processing reaction" in caplog.text


# ---------------------------------------------------------------------------
# Catalog posts
# ---------------------------------------------------------------------------
class TestCatalogPosts:
    def test_task_post_registers(self):
        bot = _make_bot()
        run_async(CatalogPosts(bot).on_message(_message(TASKS, "Water the plants - 5")))

        bot.points.register_task.assert_called_once_with(70, 5)
        bot.points.register_reward.assert_not_called()

    def test_reward_post_registers(self):
        bot = _make_bot()
        run_async(CatalogPosts(bot).on_message(_message(REWARDS, "Pick the movie - 7")))

        bot.points.register_reward.assert_called_once_with(70, 7)

    def test_malformed_post_warns_author(self):
        bot = _make_bot()
        run_async(CatalogPosts(bot).on_message(_message(TASKS, "Water the plants")))

        bot.points.register_task.assert_not_called()
        user_id, text = bot.points.reconciler.notify.await_args.args
        assert user_id == 111
        assert "not registered as a task" in text

    def test_bot_posts_ignored(self):
        bot = _make_bot()
        run_async(CatalogPosts(bot).on_message(_message(TASKS, "x - 1", author_bot=True)))
        bot.points.register_task.assert_not_called()

    @pytest.mark.parametrize(
        "content",
        ["!balance", "!help", "!balance - 5", "Water the plants - 5", "Water - lots"],
    )
    def test_live_registration_agrees_with_replay(self, content, service, tasks_log):
        """A post is accepted live exactly when the startup replay accepts it."""
        bot = _make_bot()
        run_async(CatalogPosts(bot).on_message(_message(TASKS, content)))
        registered_live = bot.points.register_task.called

        tasks_log.seed(content)
        try:
            run_async(service.bootstrap())
        except BootstrapCorruption:
            replayed = False
        else:
            replayed = True

        assert registered_live == replayed
        assert bot.points.reconciler.notify.await_count == (0 if replayed else 1)

    def test_other_channel_ignored(self):
        bot = _make_bot()
        run_async(CatalogPosts(bot).on_message(_message(USERS, "111 - 5")))

        bot.points.register_task.assert_not_called()
        bot.points.register_reward.assert_not_called()


# ---------------------------------------------------------------------------
# Member commands
# ---------------------------------------------------------------------------
class TestMetaCommands:
    def test_balance_private_by_default(self):
        bot = _make_bot()
        bot.points.check_balance.return_value = 12
        cog = Meta(bot)
        ctx = _ctx(bot)

        run_async(Meta.balance.callback(cog, ctx))

        bot.points.check_balance.assert_called_once_with(111)
        user_id, text = bot.points.reconciler.notify.await_args.args
        assert user_id == 111
        assert "12 AP" in text
        ctx.reply.assert_not_awaited()

    def test_balance_public_reply(self):
        bot = _make_bot(balance_reply="public")
        bot.points.check_balance.return_value = 3
        cog = Meta(bot)
        ctx = _ctx(bot)

        run_async(Meta.balance.callback(cog, ctx))

        assert "3 AP" in ctx.reply.await_args.args[0]
        bot.points.reconciler.notify.assert_not_awaited()

    def test_help_mentions_balance(self):
        bot = _make_bot()
        ctx = _ctx(bot)

        run_async(Meta.help_command.callback(Meta(bot), ctx))

        assert "!balance" in ctx.send.await_args.args[0]


# ---------------------------------------------------------------------------
# Admin commands
# ---------------------------------------------------------------------------
class TestAdmin:
    def test_admin_role_passes(self):
        bot = _make_bot()
        ctx = _ctx(bot, roles=[SimpleNamespace(id=ADMIN_ROLE)])
        assert run_async(is_admin().predicate(ctx)) is True

    def test_other_roles_fail(self):
        bot = _make_bot()
        ctx = _ctx(bot, roles=[SimpleNamespace(id=1)])
        assert run_async(is_admin().predicate(ctx)) is False

    def test_no_roles_fail(self):
        bot = _make_bot()
        assert run_async(is_admin().predicate(_ctx(bot))) is False

    def test_reload_reports_counts(self):
        bot = _make_bot()
        bot.points.reload.return_value = BootstrapReport(tasks=2, rewards=1, accounts=4)
        ctx = _ctx(bot)

        run_async(Admin.reload.callback(Admin(bot), ctx))

        assert ctx.send.await_args.args[0] == "✅ Reloaded 2 tasks, 1 rewards, 4 accounts."

    def test_reload_failure_keeps_state(self):
        bot = _make_bot()
        bot.points.reload.side_effect = BootstrapCorruption("users", 5, "junk", "bad")
        ctx = _ctx(bot)

        run_async(Admin.reload.callback(Admin(bot), ctx))

        assert ctx.send.await_args.args[0].startswith("❌ Reload failed, previous state kept")


# ---------------------------------------------------------------------------
# Bot lifecycle
# ---------------------------------------------------------------------------
class TestBotLifecycle:
    """on_ready and the startup notice, called unbound on a stand-in bot."""

    def _standin(self, *, fail=False):
        import asyncio

        points = MagicMock()
        points.bootstrap = AsyncMock(
            side_effect=BootstrapCorruption("users", 5, "junk", "bad") if fail else None,
        )
        points.reconciler.notify = AsyncMock(return_value=True)
        return SimpleNamespace(
            user=SimpleNamespace(id=BOT_ID, name="pointkeeper"),
            cfg=SimpleNamespace(operator_ids=(1, 2), startup_notice="up"),
            points=points,
            _ledger_ready=asyncio.Event(),
            _bootstrapping=False,
            bootstrap_failed=False,
            close=AsyncMock(),
            _send_startup_notice=AsyncMock(),
        )

    def test_ready_bootstraps_once(self):
        from pointkeeper.bot.core import PointKeeperBot

        bot = self._standin()
        run_async(PointKeeperBot.on_ready(bot))
        run_async(PointKeeperBot.on_ready(bot))

        bot.points.bootstrap.assert_awaited_once()
        assert bot._ledger_ready.is_set()
        bot._send_startup_notice.assert_awaited_once()

    def test_corrupt_backlog_closes_bot(self):
        from pointkeeper.bot.core import PointKeeperBot

        bot = self._standin(fail=True)
        run_async(PointKeeperBot.on_ready(bot))

        assert bot.bootstrap_failed is True
        assert not bot._ledger_ready.is_set()
        bot.close.assert_awaited_once()
        bot._send_startup_notice.assert_not_awaited()

    def test_startup_notice_goes_to_each_operator(self):
        from pointkeeper.bot.core import PointKeeperBot

        bot = self._standin()
        run_async(PointKeeperBot._send_startup_notice(bot))

        notified = [c.args for c in bot.points.reconciler.notify.await_args_list]
        assert notified == [(1, "up"), (2, "up")]


# ---------------------------------------------------------------------------
# Commands in record channels
# ---------------------------------------------------------------------------
class TestRecordChannelCommands:
    """Commands typed in a record channel are refused and answered by DM."""

    def _standin(self):
        from pointkeeper.bot.core import PointKeeperBot

        bot = _make_bot()
        bot.record_channel_ids = PointKeeperBot.record_channel_ids.fget(bot)
        return bot

    def _command_ctx(self, bot, channel_id):
        ctx = _ctx(bot)
        ctx.channel = SimpleNamespace(id=channel_id, name="tasks")
        ctx.command = "help"
        ctx.invoked_with = "help"
        ctx.message = SimpleNamespace(content="!help")
        return ctx

    def test_record_channels_are_the_three_log_channels(self):
        assert self._standin().record_channel_ids == frozenset({TASKS, REWARDS, USERS})

    @pytest.mark.parametrize("channel_id", [TASKS, REWARDS, USERS])
    def test_check_refuses_record_channels(self, channel_id):
        from pointkeeper.bot.core import PointKeeperBot, RecordChannelCommand

        bot = self._standin()
        ctx = self._command_ctx(bot, channel_id)

        with pytest.raises(RecordChannelCommand):
            run_async(PointKeeperBot._outside_record_channels(bot, ctx))

    def test_check_allows_other_channels(self):
        from pointkeeper.bot.core import PointKeeperBot

        bot = self._standin()
        ctx = self._command_ctx(bot, OTHER)
        assert run_async(PointKeeperBot._outside_record_channels(bot, ctx)) is True

    def test_refusal_is_sent_by_dm_not_in_channel(self):
        from pointkeeper.bot.core import PointKeeperBot, RecordChannelCommand

        bot = self._standin()
        ctx = self._command_ctx(bot, TASKS)

        run_async(PointKeeperBot.on_command_error(bot, ctx, RecordChannelCommand(TASKS)))

        ctx.send.assert_not_awaited()
        ctx.reply.assert_not_awaited()
        user_id, text = bot.points.reconciler.notify.await_args.args
        assert user_id == 111
        assert "#tasks" in text
        assert "`!help`" in text

    def test_other_check_failures_answer_in_channel(self):
        from discord.ext import commands

        from pointkeeper.bot.core import PointKeeperBot

        bot = self._standin()
        ctx = self._command_ctx(bot, OTHER)

        run_async(PointKeeperBot.on_command_error(bot, ctx, commands.CheckFailure()))

        ctx.send.assert_awaited_once()
        bot.points.reconciler.notify.assert_not_awaited()
