import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from marketplace.notifications.dispatcher import NotificationDispatcher
from marketplace.promotions.config import DISCOUNT_TYPE_PERCENTAGE
from marketplace.promotions.exceptions import (
    DuplicatePromotionCodeException,
    InvalidPromotionDataException,
    PromotionNotFoundException,
    PromotionInUseException,
    PromotionNotValidException,
)
from marketplace.promotions.models import (
    BestPromotionItem,
    Promotion,
    PromotionCreate,
    PromotionRead,
    PromotionReport,
    PromotionStats,
    PromotionUpdate,
)
from marketplace.promotions.repositories import PromotionRepository
from marketplace.promotions.utils import as_utc, is_promotion_valid, period_keys, select_best_promotion
from marketplace.core.exceptions import ForbiddenException
from marketplace.users.models import utcnow

logger = logging.getLogger(__name__)


class PromotionService:
    """Service applicatif pour la gestion des promotions des commerçants."""

    def __init__(self, promotion_repository: PromotionRepository, notifier: NotificationDispatcher):
        self.promotion_repository = promotion_repository
        self.notifier = notifier
        self.db = promotion_repository.db

    # --- Validation ---

    @staticmethod
    def _validate_values(discount_type: str, discount_value: Decimal, expiration_date: Optional[datetime]) -> None:
        if discount_type == DISCOUNT_TYPE_PERCENTAGE and discount_value > 100:
            raise InvalidPromotionDataException("Une remise en pourcentage ne peut pas dépasser 100.")
        if expiration_date is not None and as_utc(expiration_date) < datetime.now(timezone.utc):
            raise InvalidPromotionDataException("La date d'expiration doit être dans le futur.")

    async def _get(self, promotion_id: int) -> Promotion:
        promotion = await self.promotion_repository.get_by_id(promotion_id)
        if not promotion:
            raise PromotionNotFoundException(promotion_id)
        return promotion

    async def _get_owned(self, promotion_id: int, requesting_user_id: int, is_admin: bool) -> Promotion:
        promotion = await self._get(promotion_id)
        if not is_admin and promotion.merchant_id != requesting_user_id:
            raise ForbiddenException(f"La promotion ID={promotion_id} n'appartient pas à ce commerçant.")
        return promotion

    # --- CRUD ---

    async def create_promotion(self, merchant_id: int, promotion_in: PromotionCreate) -> PromotionRead:
        logger.info(f"[PromotionService] Création promotion '{promotion_in.code}' pour commerçant {merchant_id}")
        self._validate_values(promotion_in.discount_type, promotion_in.discount_value, promotion_in.expiration_date)
        if await self.promotion_repository.code_exists(promotion_in.code):
            raise DuplicatePromotionCodeException(promotion_in.code)
        promotion = Promotion(**promotion_in.model_dump(), merchant_id=merchant_id, created_by=merchant_id)
        promotion = await self.promotion_repository.add(promotion)
        await self.db.commit()
        return PromotionRead.model_validate(promotion)

    async def get_promotion(self, promotion_id: int) -> PromotionRead:
        return PromotionRead.model_validate(await self._get(promotion_id))

    async def update_promotion(
        self, promotion_id: int, promotion_in: PromotionUpdate, requesting_user_id: int, is_admin: bool
    ) -> PromotionRead:
        promotion = await self._get_owned(promotion_id, requesting_user_id, is_admin)
        update_data = promotion_in.model_dump(exclude_unset=True)
        self._validate_values(
            update_data.get("discount_type", promotion.discount_type),
            update_data.get("discount_value", promotion.discount_value),
            update_data.get("expiration_date"),
        )
        for key, value in update_data.items():
            setattr(promotion, key, value)
        promotion.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(promotion)
        logger.info(f"[PromotionService] Promotion {promotion_id} mise à jour.")
        return PromotionRead.model_validate(promotion)

    async def toggle_promotion_status(
        self, promotion_id: int, is_active: bool, requesting_user_id: int, is_admin: bool
    ) -> PromotionRead:
        """Active ou désactive une promotion."""
        promotion = await self._get_owned(promotion_id, requesting_user_id, is_admin)
        promotion.is_active = is_active
        promotion.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(promotion)
        logger.info(f"[PromotionService] Promotion {promotion_id} {'activée' if is_active else 'désactivée'}.")
        return PromotionRead.model_validate(promotion)

    async def delete_promotion(self, promotion_id: int, requesting_user_id: int, is_admin: bool) -> None:
        promotion = await self._get_owned(promotion_id, requesting_user_id, is_admin)
        if promotion.used_count > 0 or await self.promotion_repository.is_referenced(promotion_id):
            logger.warning(f"[PromotionService] Suppression refusée : promotion {promotion_id} déjà utilisée.")
            raise PromotionInUseException(promotion_id)
        await self.promotion_repository.delete(promotion)
        await self.db.commit()
        logger.info(f"[PromotionService] Promotion {promotion_id} supprimée.")

    # --- Recherche ---

    @staticmethod
    def _matches(promotion: Promotion, region: Optional[str], product_id: Optional[int]) -> bool:
        if region and region not in (promotion.applicable_regions or []):
            return False
        if product_id is not None and product_id not in (promotion.applicable_products or []):
            return False
        return True

    async def list_promotions(
        self,
        merchant_id: int,
        limit: int,
        offset: int,
        active_only: bool = True,
        region: Optional[str] = None,
        product_id: Optional[int] = None,
    ) -> Tuple[List[PromotionRead], int]:
        """Promotions actives (ou tout l'historique) d'un commerçant, filtrées par région/produit."""
        promotions = await self.promotion_repository.list_for_merchant(merchant_id, active_only)
        matching = [p for p in promotions if self._matches(p, region, product_id)]
        page = matching[offset:offset + limit]
        return [PromotionRead.model_validate(p) for p in page], len(matching)

    async def get_expiring_promotions(self, days: int) -> List[PromotionRead]:
        now = datetime.now(timezone.utc)
        promotions = await self.promotion_repository.list_expiring(now, now + timedelta(days=days))
        return [PromotionRead.model_validate(p) for p in promotions]

    async def notify_expiring_promotions(self, days: int) -> int:
        """Prévient chaque commerçant dont une promotion expire dans `days` jours."""
        promotions = await self.get_expiring_promotions(days)
        for promotion in promotions:
            self.notifier.emit(
                promotion.merchant_id,
                f'Votre promotion "{promotion.code}" expire dans {days} jours.',
                "promotion",
            )
        logger.info(f"[PromotionService] {len(promotions)} notification(s) d'expiration émise(s).")
        return len(promotions)

    async def find_best_promotion(self, items: Iterable[BestPromotionItem]) -> Tuple[Optional[PromotionRead], Decimal]:
        items = list(items)
        subtotal = sum((Decimal(str(i.price)) * i.quantity for i in items), Decimal("0"))
        candidates = [p for p in await self.promotion_repository.list_active() if is_promotion_valid(p)]
        best, discount = select_best_promotion(candidates, [i.product_id for i in items], subtotal)
        if best is None:
            return None, Decimal("0")
        return PromotionRead.model_validate(best), discount

    # --- Redemption ---

    async def apply_promotion(self, promotion: Promotion, user_id: int, order_id: Optional[int] = None) -> None:
        """
        Consomme une utilisation de la promotion et met à jour ses compteurs.

        Ne fait pas de commit : l'appelant décide de la transaction.
        """
        if not is_promotion_valid(promotion):
            raise PromotionNotValidException(promotion.code)
        if not await self.promotion_repository.increment_usage_if_available(promotion.id):
            # Un autre client a consommé la dernière utilisation entre-temps
            raise PromotionNotValidException(promotion.code)
        self.promotion_repository.add_redemption(promotion.id, user_id, order_id)

        week, month, year = period_keys(datetime.now(timezone.utc))
        stats = {k: dict(v) for k, v in (promotion.stats or {}).items()}
        for bucket, key in (("weekly", week), ("monthly", month), ("yearly", year)):
            counters = stats.setdefault(bucket, {})
            counters[key] = counters.get(key, 0) + 1
        promotion.stats = stats
        await self.db.flush()
        logger.info(f"[PromotionService] Promotion {promotion.code} appliquée (user {user_id}, order {order_id}).")

    async def redeem(self, promotion_id: int, user_id: int, order_id: Optional[int] = None) -> PromotionRead:
        promotion = await self._get(promotion_id)
        try:
            await self.apply_promotion(promotion, user_id, order_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(promotion)
        return PromotionRead.model_validate(promotion)

    # --- Statistiques ---

    async def get_promotion_stats(self, promotion_id: int) -> PromotionStats:
        promotion = await self._get(promotion_id)
        stats = promotion.stats or {}
        return PromotionStats(
            total_redemptions=promotion.used_count,
            conversion_rate=promotion.used_count / (promotion.usage_limit or 1),
            weekly_redemptions=list(stats.get("weekly", {}).items()),
            monthly_redemptions=list(stats.get("monthly", {}).items()),
            yearly_redemptions=list(stats.get("yearly", {}).items()),
        )

    async def generate_promotion_report(self) -> PromotionReport:
        now = datetime.now(timezone.utc)
        return PromotionReport(
            total_promotions=await self.promotion_repository.count_all(),
            active_promotions=await self.promotion_repository.count_active(),
            expired_promotions=await self.promotion_repository.count_expired(now),
        )
