"""
GridStrategy - grid market-making state machine.

Wires a price source, the exchange's balance/execution surface, the level
generator, the risk guard and the order manager together:

    event (price tick / fill) -> applicability checks -> price + balance
    -> GridLevelGenerator -> RiskGuard -> GridOrderManager.reconcile

start() surfaces failures to its caller. on_price_update() and
on_order_update() are notifications with nobody to report to: they log
failures and return.

At most one reconciliation pass runs at a time per instance. Triggers that
arrive while a pass is in flight are dropped; the next trigger re-evaluates
against whatever state exists then.

While running, a background task polls the exchange ticker and feeds the mid
price to on_price_update, and one delayed recheck regrids if initial orders
filled as soon as they were placed. stop() cancels both.
"""

import asyncio
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

import structlog
from pydantic import ValidationError

from gridmaker.api.models import Balance, Order, OrderStatus
from gridmaker.strategies.base import BaseStrategy, StrategyStatus
from gridmaker.utils.logger import log_context

from .errors import (
    BalanceUnavailableError,
    GridConfigurationError,
    StrategyNotInitializedError,
)
from .exchange_protocol import IGridExchange, IPriceSource
from .grid_calculator import DynamicGridConfig, GridLevel, GridLevelGenerator
from .grid_config import GridSettings, GridStrategyConfig
from .grid_order_manager import GridOrderManager, ReconcileResult
from .grid_risk_manager import RiskConfig, RiskGuard
from .volatility_tracker import VolatilityTracker

logger = structlog.get_logger(__name__)

_FILL_STATUSES = (OrderStatus.FILLED, OrderStatus.PARTIALLY_FILLED)


class GridStrategy(BaseStrategy):
    """
    Symmetric grid around a confidence-gated center price.

    Args:
        strategy_id: Instance identifier.
        price_source: Aggregated token price provider.
        exchange: Exchange adapter; may also be attached later.
        clock: Monotonic clock used for debounce, injectable for tests.
    """

    strategy_type = "grid"

    def __init__(
        self,
        strategy_id: str,
        price_source: IPriceSource | None = None,
        exchange: IGridExchange | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(strategy_id)
        self._price_source = price_source
        self._exchange = exchange
        self._clock = clock

        self._config: GridStrategyConfig | None = None
        self._grid_settings: GridSettings | None = None
        self._risk_config = RiskConfig()
        self._order_manager: GridOrderManager | None = None
        self._volatility_tracker: VolatilityTracker | None = None

        self._pass_lock = asyncio.Lock()
        self._subscription_id: str | None = None
        self._event_tasks: set[asyncio.Task[None]] = set()
        self._price_monitor_task: asyncio.Task[None] | None = None
        self._recheck_task: asyncio.Task[None] | None = None
        self._stop_generation = 0
        self._last_result: ReconcileResult | None = None

    # =================================================================
    # Wiring
    # =================================================================

    @property
    def symbol(self) -> str:
        if self._config is None:
            raise StrategyNotInitializedError(f"Strategy {self.id} not initialized")
        return self._config.symbol

    @property
    def order_manager(self) -> GridOrderManager | None:
        return self._order_manager

    @property
    def risk_config(self) -> RiskConfig:
        return self._risk_config

    def set_exchange_connector(self, connector: IGridExchange) -> None:
        if connector is not self._exchange:
            self._subscription_id = None
        self._exchange = connector

    def set_price_source(self, price_source: IPriceSource) -> None:
        self._price_source = price_source

    def set_risk_config(self, config: RiskConfig) -> None:
        """Replace risk limits; takes effect on the next reconciliation pass."""
        self._risk_config = config
        logger.info(
            "Risk config updated",
            strategy_id=self.id,
            max_position_size=str(config.max_position_size),
            safety_reserve_percentage=str(config.safety_reserve_percentage),
            min_confidence=config.min_confidence,
        )

    # =================================================================
    # Lifecycle
    # =================================================================

    async def initialize(self, config: GridStrategyConfig | Mapping[str, Any]) -> None:
        """
        Validate and store configuration, leaving the strategy idle.

        Raises:
            GridConfigurationError: missing grid_config, schema violations, or
                a grid whose spacing cannot produce positive prices.
        """
        if self._status == StrategyStatus.RUNNING:
            raise GridConfigurationError("Cannot re-initialize a running strategy; stop it first")

        parsed = self._parse_config(config)
        settings = parsed.grid_config
        dynamic = settings.to_dynamic_config()
        # Spacing validity does not depend on the center, so check at 1
        GridLevelGenerator.generate(Decimal("1"), dynamic)

        self._config = parsed
        self._grid_settings = settings
        self._risk_config = parsed.to_risk_config()
        self._order_manager = GridOrderManager(parsed.symbol, settings.to_order_manager_config())
        self._volatility_tracker = VolatilityTracker() if settings.volatility_tracking else None
        self._set_status(StrategyStatus.IDLE)

        self._log_grid_configuration(dynamic)

    @staticmethod
    def _parse_config(config: GridStrategyConfig | Mapping[str, Any]) -> GridStrategyConfig:
        if isinstance(config, GridStrategyConfig):
            return config
        if not isinstance(config, Mapping) or config.get("grid_config") is None:
            raise GridConfigurationError("Grid strategy requires grid_config")
        try:
            return GridStrategyConfig.model_validate(dict(config))
        except ValidationError as e:
            raise GridConfigurationError(f"Invalid grid strategy configuration: {e}") from e

    async def start(self) -> None:
        """
        Place the initial grid and begin reacting to events.

        Raises:
            StrategyNotInitializedError: config, exchange or price source missing.
            PriceConfidenceError: aggregated price below min_confidence.
            BalanceUnavailableError: balance fetch failed or quote asset missing.
            Any error from the price source itself.
        """
        if (
            self._config is None
            or self._order_manager is None
            or self._exchange is None
            or self._price_source is None
        ):
            raise StrategyNotInitializedError("Strategy not properly initialized")

        if self._status == StrategyStatus.RUNNING:
            logger.warning("Strategy already running", strategy_id=self.id)
            return

        # stop() bumps this; a change while fetching means the start was called off
        generation = self._stop_generation

        async with self._pass_lock:
            try:
                center = await self._fetch_center_price(prefer_exchange_mid=False)
                balance = await self._fetch_quote_balance()
                levels = self._build_target_levels(center, balance)
            except Exception as e:
                if generation == self._stop_generation:
                    self._set_status(StrategyStatus.ERROR)
                logger.error("Grid strategy start failed", strategy_id=self.id, error=str(e))
                raise

            if generation != self._stop_generation:
                logger.warning(
                    "Strategy stopped while starting, grid not placed", strategy_id=self.id
                )
                return

            self._set_status(StrategyStatus.RUNNING)
            with log_context(strategy_id=self.id, trigger="start"):
                result = await self._reconcile(center, levels)

        if self._status != StrategyStatus.RUNNING:
            return

        await self._setup_order_subscription()
        if self._status != StrategyStatus.RUNNING:
            return
        self._start_background_tasks(result.created)

        logger.info(
            "Grid strategy started",
            strategy_id=self.id,
            symbol=self.symbol,
            center_price=str(center),
            orders=result.created,
        )

    async def stop(self) -> None:
        """Cancel all resting orders for the symbol. Always ends stopped."""
        self._stop_generation += 1
        self._set_status(StrategyStatus.STOPPED)
        await self._cancel_background_tasks()

        if self._exchange is None or self._config is None:
            return

        try:
            await self._exchange.cancel_all_orders(self._config.symbol)
        except Exception as e:
            logger.error(
                "Failed to cancel orders on stop",
                strategy_id=self.id,
                symbol=self._config.symbol,
                error=str(e),
            )
        finally:
            if self._order_manager is not None:
                self._order_manager.clear()
            if self._volatility_tracker is not None:
                self._volatility_tracker.reset()

        logger.info("Grid strategy stopped", strategy_id=self.id, symbol=self._config.symbol)

    # =================================================================
    # Event Handlers
    # =================================================================

    async def on_order_update(self, order: Order) -> None:
        """Regrid after a fill, bypassing the debounce."""
        if self._config is None or order.symbol != self._config.symbol:
            return
        if order.status not in _FILL_STATUSES:
            return
        if self._status != StrategyStatus.RUNNING:
            return
        if self._pass_lock.locked():
            logger.info(
                "Grid adjustment in progress, ignoring order event",
                strategy_id=self.id,
                order_id=order.id,
                status=str(order.status),
            )
            return

        async with self._pass_lock:
            logger.info(
                "Grid order filled",
                strategy_id=self.id,
                order_id=order.id,
                side=str(order.side),
                filled=str(order.filled),
                price=str(order.price),
            )
            try:
                with log_context(strategy_id=self.id, trigger="fill"):
                    center = await self._fetch_center_price(prefer_exchange_mid=True)
                    await self._run_pass(center)
            except Exception as e:
                logger.error("Order fill handling failed", strategy_id=self.id, error=str(e))

    async def on_price_update(self, symbol: str, price: Decimal) -> None:
        """Regrid when the price drifted past the threshold and the debounce elapsed."""
        if self._config is None or self._grid_settings is None or self._order_manager is None:
            return
        if symbol != self._config.symbol or self._status != StrategyStatus.RUNNING:
            return

        try:
            price = Decimal(str(price))
            now = self._clock()

            volatility_changed = False
            if self._volatility_tracker is not None:
                self._volatility_tracker.record_price(price)
                volatility_changed = self._volatility_tracker.has_multiplier_changed()

            should_adjust = self._order_manager.should_adjust(price, now) or (
                volatility_changed and self._order_manager.debounce_elapsed(now)
            )
            if not should_adjust:
                return
            if self._pass_lock.locked():
                logger.debug("Grid adjustment in progress, dropping price trigger", price=str(price))
                return

            async with self._pass_lock:
                with log_context(strategy_id=self.id, trigger="price"):
                    await self._run_pass(price)
        except Exception as e:
            logger.error("Price update handling failed", strategy_id=self.id, error=str(e))

    # =================================================================
    # Background Tasks
    # =================================================================

    def _start_background_tasks(self, placed: int) -> None:
        assert self._grid_settings is not None
        if self._grid_settings.price_poll_interval is not None:
            self._price_monitor_task = asyncio.create_task(self._price_monitor())
        if self._grid_settings.fill_recheck_delay is not None and placed > 0:
            self._recheck_task = asyncio.create_task(self._recheck_immediate_fills(placed))

    async def _cancel_background_tasks(self) -> None:
        tasks = [self._price_monitor_task, self._recheck_task]
        self._price_monitor_task = None
        self._recheck_task = None
        current = asyncio.current_task()
        for task in tasks:
            if task and task is not current and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    async def _price_monitor(self) -> None:
        """Poll the exchange ticker while running and feed the mid price to on_price_update."""
        assert self._grid_settings is not None and self._grid_settings.price_poll_interval
        interval = self._grid_settings.price_poll_interval
        logger.info("Price monitor started", strategy_id=self.id, interval=interval)

        while self._status == StrategyStatus.RUNNING:
            try:
                await asyncio.sleep(interval)
                await self.poll_price()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Price monitor error", strategy_id=self.id, error=str(e))

        logger.info("Price monitor stopped", strategy_id=self.id)

    async def poll_price(self) -> None:
        """One ticker poll: mid price into on_price_update."""
        if self._exchange is None or self._config is None:
            return
        ticker = await self._exchange.get_ticker(self._config.symbol)
        await self.on_price_update(self._config.symbol, Decimal(str(ticker.mid_price)))

    async def _recheck_immediate_fills(self, placed: int) -> None:
        """Regrid once when orders from the initial placement filled on arrival."""
        assert self._exchange is not None and self._grid_settings is not None
        try:
            open_orders = await self._exchange.get_open_orders(self.symbol)
        except Exception as e:
            logger.error("Open order check failed", strategy_id=self.id, error=str(e))
            return
        if len(open_orders) >= placed:
            return

        logger.info(
            "Initial orders filled immediately, regridding",
            strategy_id=self.id,
            placed=placed,
            open=len(open_orders),
        )
        await asyncio.sleep(self._grid_settings.fill_recheck_delay or 0)

        if self._status != StrategyStatus.RUNNING or self._pass_lock.locked():
            return
        async with self._pass_lock:
            try:
                with log_context(strategy_id=self.id, trigger="recheck"):
                    ticker = await self._exchange.get_ticker(self.symbol)
                    await self._run_pass(Decimal(str(ticker.mid_price)))
            except Exception as e:
                logger.error("Immediate fill regrid failed", strategy_id=self.id, error=str(e))

    def _on_user_order(self, order: Order) -> "asyncio.Task[None]":
        """Subscription callback: adapters may call it synchronously."""
        task = asyncio.get_running_loop().create_task(self.on_order_update(order))
        self._event_tasks.add(task)
        task.add_done_callback(self._event_tasks.discard)
        return task

    # =================================================================
    # Reconciliation
    # =================================================================

    async def _run_pass(self, center: Decimal) -> ReconcileResult:
        """Fetch balance, rebuild target levels, reconcile. Caller holds the lock."""
        balance = await self._fetch_quote_balance()
        levels = self._build_target_levels(center, balance)
        return await self._reconcile(center, levels)

    async def _reconcile(self, center: Decimal, levels: list[GridLevel]) -> ReconcileResult:
        assert self._order_manager is not None and self._exchange is not None
        result = await self._order_manager.reconcile(levels, self._exchange)
        self._order_manager.mark_adjusted(center, self._clock())
        self._last_result = result

        if self._status != StrategyStatus.RUNNING:
            # stop() landed while orders were being created
            logger.warning("Strategy stopped during reconciliation, cancelling new orders")
            try:
                await self._exchange.cancel_all_orders(self.symbol)
            except Exception as e:
                logger.error("Failed to cancel orders after stop", error=str(e))
            self._order_manager.clear()
        return result

    def _build_target_levels(self, center: Decimal, balance: Balance) -> list[GridLevel]:
        dynamic = self._effective_grid_config()
        levels = GridLevelGenerator.generate(center, dynamic)
        available = RiskGuard.calculate_available_balance(balance, self._risk_config)
        check = RiskGuard.validate(levels, available, self._risk_config)
        for reason in check.reasons:
            logger.warning("Grid level rejected", strategy_id=self.id, reason=reason)
        return check.accepted

    def _effective_grid_config(self) -> DynamicGridConfig:
        assert self._grid_settings is not None
        dynamic = self._grid_settings.to_dynamic_config()
        if self._volatility_tracker is None:
            return dynamic
        return dynamic.with_volatility_multiplier(
            dynamic.volatility_multiplier * self._volatility_tracker.applied_multiplier
        )

    # =================================================================
    # Collaborator Access
    # =================================================================

    async def _fetch_center_price(self, prefer_exchange_mid: bool) -> Decimal:
        """
        Aggregated price gated on confidence, or the exchange mid price when
        configured for fill-triggered regrids.
        """
        assert self._config is not None and self._grid_settings is not None
        if prefer_exchange_mid and self._grid_settings.use_exchange_mid_price:
            assert self._exchange is not None
            ticker = await self._exchange.get_ticker(self._config.symbol)
            return Decimal(str(ticker.mid_price))

        if self._price_source is None:
            raise StrategyNotInitializedError("Price source not set")
        aggregated = await self._price_source.get_token_price(self._config.base_asset)
        RiskGuard.check_price_confidence(aggregated, self._risk_config)
        return Decimal(str(aggregated.price))

    async def _fetch_quote_balance(self) -> Balance:
        if self._exchange is None:
            raise StrategyNotInitializedError("Exchange connector not set")
        quote = self._get_config().quote_asset
        try:
            balances = await self._exchange.get_balance()
        except Exception as e:
            raise BalanceUnavailableError(f"Balance fetch failed: {e}") from e

        balance = balances.get(quote)
        if balance is None:
            raise BalanceUnavailableError(f"No balance found for {quote}")
        return balance

    async def get_available_balance(self) -> Decimal:
        """Spendable quote balance for the configured symbol."""
        balance = await self._fetch_quote_balance()
        return RiskGuard.calculate_available_balance(balance, self._risk_config)

    async def _setup_order_subscription(self) -> None:
        """Private order stream; failure leaves the grid running without fill-driven regrids."""
        if self._subscription_id is not None:
            return
        assert self._exchange is not None
        try:
            await self._exchange.connect_user_data_stream()
            self._subscription_id = await self._exchange.subscribe_user_orders(self._on_user_order)
        except Exception as e:
            logger.error(
                "Failed to set up order subscription, fill-driven regrid unavailable",
                strategy_id=self.id,
                error=str(e),
            )

    # =================================================================
    # Status
    # =================================================================

    def get_status(self) -> dict[str, Any]:
        status = super().get_status()
        if self._config is not None:
            status["symbol"] = self._config.symbol
            status["exchange"] = self._config.exchange
        status["order_stream"] = self._subscription_id is not None
        status["risk"] = {
            "max_position_size": str(self._risk_config.max_position_size),
            "safety_reserve_percentage": str(self._risk_config.safety_reserve_percentage),
            "min_confidence": self._risk_config.min_confidence,
        }
        if self._order_manager is not None:
            status["orders"] = self._order_manager.get_statistics()
        if self._last_result is not None:
            status["last_reconcile"] = self._last_result.to_dict()
        return status

    def _log_grid_configuration(self, config: DynamicGridConfig) -> None:
        logger.info(
            "Grid configuration",
            strategy_id=self.id,
            symbol=self._config.symbol if self._config else None,
            levels_per_side=config.levels,
            total_orders=config.levels * 2,
            spacing_model=config.spacing_model.value,
            base_spacing=str(config.base_spacing),
            spacing_factor=str(config.spacing_factor) if config.spacing_factor else None,
            size_model=config.size_model.value,
            base_size=str(config.base_size),
            volatility_multiplier=str(config.volatility_multiplier),
            min_order_value=str(config.min_order_value),
        )
