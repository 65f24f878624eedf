from moderator.engine.roles import ActionKind, Team
from moderator.engine.status import Status


# --- Validation --------------------------------------------------------------


def test_dead_actor_is_rejected(make_resolver):
    store, resolver = make_resolver("seer", "werewolf")
    store.kill_player("p1")
    check = resolver.can_perform_action("p1", ActionKind.INVESTIGATE, ["p2"])
    assert not check.allowed
    assert check.reason == "Player is dead"


def test_unknown_actor_is_rejected(make_resolver):
    _, resolver = make_resolver("seer")
    assert resolver.can_perform_action("nobody", ActionKind.INVESTIGATE, ["p1"]).reason == "Player not found"


def test_exiled_actor_is_rejected(make_resolver):
    store, resolver = make_resolver("seer", "werewolf")
    store.set_exiled("p1")
    assert resolver.can_perform_action("p1", ActionKind.INVESTIGATE, ["p2"]).reason == "Player is exiled"


def test_role_must_define_the_action(make_resolver):
    _, resolver = make_resolver("seer", "werewolf", "villager")
    assert not resolver.can_perform_action("p1", ActionKind.KILL, ["p2"])
    assert resolver.can_perform_action("p3", ActionKind.KILL, ["p2"]).reason == "Role has no night action"


def test_once_per_game_blocks_second_use(make_resolver):
    store, resolver = make_resolver("huntress", "werewolf", "villager")
    assert resolver.can_perform_action("p1", ActionKind.KILL, ["p2"])
    store.use_ability("p1", ActionKind.KILL.value)
    assert not resolver.can_perform_action("p1", ActionKind.KILL, ["p3"])


def test_first_night_only(make_resolver):
    _, resolver = make_resolver("cupid", "villager", "villager")
    assert resolver.can_perform_action("p1", ActionKind.CREATE_LOVERS, ["p2", "p3"], 1)
    assert not resolver.can_perform_action("p1", ActionKind.CREATE_LOVERS, ["p2", "p3"], 2)


def test_excluded_first_night(make_resolver):
    _, resolver = make_resolver("gambler", "villager")
    assert not resolver.can_perform_action("p1", ActionKind.GAMBLE, ["p2"], 1)
    assert resolver.can_perform_action("p1", ActionKind.GAMBLE, ["p2"], 2)


def test_conditional_trigger_needs_matching_death(make_resolver):
    store, resolver = make_resolver("red_riding_hood", "grandmother", "werewolf")
    assert not resolver.can_perform_action("p1", ActionKind.KILL, ["p3"])

    store.kill_player("p2", "execution")
    assert not resolver.can_perform_action("p1", ActionKind.KILL, ["p3"])

    store.get("p2").killed_by = "werewolf"
    assert resolver.can_perform_action("p1", ActionKind.KILL, ["p3"])


def test_apprentice_seer_waits_for_seer(make_resolver):
    store, resolver = make_resolver("apprentice_seer", "seer", "werewolf")
    assert not resolver.can_perform_action("p1", ActionKind.INVESTIGATE, ["p3"])
    store.kill_player("p2", "werewolf")
    assert resolver.can_perform_action("p1", ActionKind.INVESTIGATE, ["p3"])


def test_no_consecutive_target(make_resolver):
    store, resolver = make_resolver("guard", "villager", "villager")
    store.set_last_protected("p1", "p2")
    check = resolver.can_perform_action("p1", ActionKind.PROTECT, ["p2"])
    assert check.reason == "Cannot target same person consecutively"
    assert resolver.can_perform_action("p1", ActionKind.PROTECT, ["p3"])


def test_cannot_target_own_team_except_carve_out(make_resolver):
    _, resolver = make_resolver("werewolf", "werewolf", "wolf_cub", "villager")
    assert not resolver.can_perform_action("p1", ActionKind.KILL, ["p2"])
    assert resolver.can_perform_action("p1", ActionKind.KILL, ["p3"])
    assert resolver.can_perform_action("p1", ActionKind.KILL, ["p4"])


def test_dead_target_only_allowed_for_information(make_resolver):
    store, resolver = make_resolver("mystic_seer", "werewolf", "villager")
    store.kill_player("p3")
    assert resolver.can_perform_action("p1", ActionKind.INVESTIGATE, ["p3"])
    assert resolver.can_perform_action("p2", ActionKind.KILL, ["p3"]).reason == "Target is dead"
    assert resolver.can_perform_action("p2", ActionKind.KILL, ["p9"]).reason == "Target p9 not found"


def test_self_target_flag(make_resolver):
    _, resolver = make_resolver("seer", "guard")
    assert resolver.can_perform_action("p1", ActionKind.INVESTIGATE, ["p1"]).reason == "Cannot target self"
    assert resolver.can_perform_action("p2", ActionKind.PROTECT, ["p2"])


def test_too_many_targets(make_resolver):
    _, resolver = make_resolver("werewolf", "villager", "villager")
    assert resolver.can_perform_action("p1", ActionKind.KILL, ["p2", "p3"]).reason == "Too many targets"


def test_pack_bonus_raises_target_limit(make_resolver):
    store, resolver = make_resolver("werewolf", "villager", "villager")
    store.set_werewolf_kill_bonus(1)
    assert resolver.can_perform_action("p1", ActionKind.KILL, ["p2", "p3"])


def test_dual_sub_action_must_be_declared_and_unused(make_resolver):
    store, resolver = make_resolver("witch", "villager")
    assert resolver.can_perform_action("p1", ActionKind.DUAL, ["p2"], sub_action=ActionKind.HEAL)
    assert not resolver.can_perform_action("p1", ActionKind.DUAL, ["p2"], sub_action=ActionKind.PROTECT)
    store.use_ability("p1", "heal")
    check = resolver.can_perform_action("p1", ActionKind.DUAL, ["p2"], sub_action=ActionKind.HEAL)
    assert check.reason == "heal already used"
    assert resolver.can_perform_action("p1", ActionKind.DUAL, ["p2"], sub_action=ActionKind.KILL)


def test_rejected_submission_changes_nothing(make_resolver, act):
    store, resolver = make_resolver("seer", "werewolf")
    check = resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p1"))
    assert not check
    assert resolver.pending_actions == []


def test_submission_with_wrong_role_is_rejected(make_resolver, act):
    store, resolver = make_resolver("villager", "werewolf")
    action = act(store, "p1", ActionKind.KILL, "p2")
    action.role_id = "werewolf"
    assert not resolver.submit_action(action)


def test_submission_order_is_recorded(make_resolver, act):
    store, resolver = make_resolver("werewolf", "seer", "villager")
    resolver.submit_action(act(store, "p2", ActionKind.INVESTIGATE, "p1"))
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p3"))
    assert [a.order for a in resolver.pending_actions] == [1, 2]


# --- Resolution passes ---------------------------------------------------------


def test_protection_blocks_kill(make_resolver, act):
    store, resolver = make_resolver("werewolf", "guard", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p3"))
    resolver.submit_action(act(store, "p2", ActionKind.PROTECT, "p3"))
    result = resolver.resolve_night_phase()

    assert result.deaths == []
    assert result.saved == ["p3"]
    assert store.get("p2").last_protected_id == "p3"
    assert store.is_alive("p3")


def test_blessing_is_permanent(make_resolver, act):
    store, resolver = make_resolver("werewolf", "priest", "villager")
    resolver.submit_action(act(store, "p2", ActionKind.BLESS, "p3"))
    resolver.resolve_night_phase()
    assert store.has_used_ability("p2", "bless")

    store.reset_night_statuses()
    resolver.night_number = 2
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p3"))
    result = resolver.resolve_night_phase()
    assert result.deaths == []
    assert result.saved == ["p3"]


def test_unprotected_target_dies(make_resolver, act):
    store, resolver = make_resolver("werewolf", "villager", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p2"))
    result = resolver.resolve_night_phase()

    assert result.deaths == ["p2"]
    assert not store.is_alive("p2")
    assert store.get("p2").killed_by == "werewolf"
    assert store.get("p2").has(Status.BITTEN)


def test_heal_cancels_kill_regardless_of_submission_order(make_resolver, act):
    store, resolver = make_resolver("werewolf", "witch", "villager")
    resolver.submit_action(act(store, "p2", ActionKind.DUAL, "p3", sub_action=ActionKind.HEAL))
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p3"))
    result = resolver.resolve_night_phase()

    assert result.deaths == []
    assert result.saved == ["p3"]
    assert store.get("p3").has(Status.HEALED)
    assert store.has_used_ability("p2", "heal")


def test_heal_without_danger_keeps_potion(make_resolver, act):
    store, resolver = make_resolver("werewolf", "witch", "villager")
    resolver.submit_action(act(store, "p2", ActionKind.DUAL, "p3", sub_action=ActionKind.HEAL))
    result = resolver.resolve_night_phase()
    assert not store.has_used_ability("p2", "heal")
    assert not result.outcomes[-1].success


def test_duplicate_kills_die_once(make_resolver, act):
    store, resolver = make_resolver("werewolf", "werewolf", "villager", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p3"))
    resolver.submit_action(act(store, "p2", ActionKind.KILL, "p3"))
    result = resolver.resolve_night_phase()
    assert result.deaths == ["p3"]


def test_vampire_kill_records_cause(make_resolver, act):
    store, resolver = make_resolver("vampire", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p2"))
    resolver.resolve_night_phase()
    assert store.get("p2").killed_by == "vampire"


def test_witch_poison_uses_kill_key(make_resolver, act):
    store, resolver = make_resolver("witch", "werewolf", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.DUAL, "p2", sub_action=ActionKind.KILL))
    result = resolver.resolve_night_phase()

    assert result.deaths == ["p2"]
    assert store.get("p2").killed_by == "night_kill"
    assert store.has_used_ability("p1", "kill")
    assert not store.has_used_ability("p1", "heal")


def test_dual_without_sub_action_is_skipped(make_resolver, act):
    store, resolver = make_resolver("witch", "werewolf")
    assert resolver.submit_action(act(store, "p1", ActionKind.DUAL, "p2"))
    result = resolver.resolve_night_phase()

    assert result.deaths == []
    assert len(result.outcomes) == 1
    assert not result.outcomes[0].success
    assert store.get("p1").used_abilities == set()


def test_tough_guy_dies_a_night_later(make_resolver, act):
    store, resolver = make_resolver("werewolf", "tough_guy", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p2"))
    result = resolver.resolve_night_phase()

    assert result.deaths == []
    assert store.is_alive("p2")
    assert store.get("p2").death_delay == 1
    assert store.process_delayed_deaths() == ["p2"]


def test_tough_guy_dies_at_once_to_non_werewolf(make_resolver, act):
    store, resolver = make_resolver("vampire", "tough_guy")
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p2"))
    assert resolver.resolve_night_phase().deaths == ["p2"]


def test_cursed_transforms_instead_of_dying(make_resolver, act):
    store, resolver = make_resolver("werewolf", "cursed", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p2"))
    result = resolver.resolve_night_phase()

    assert result.deaths == []
    assert result.transformed == ["p2"]
    cursed = store.get("p2")
    assert cursed.role_id == "werewolf"
    assert cursed.team == Team.WEREWOLF
    assert cursed.original_role_id == "cursed"


def test_diseased_blocks_the_next_pack_kill(make_resolver, act):
    store, resolver = make_resolver("werewolf", "diseased", "villager", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p2"))
    assert resolver.resolve_night_phase().deaths == ["p2"]
    assert store.get("p1").infected

    resolver.night_number = 2
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p3"))
    result = resolver.resolve_night_phase()
    assert result.deaths == []
    assert not result.outcomes[0].success
    assert not store.get("p1").infected

    resolver.night_number = 3
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p3"))
    assert resolver.resolve_night_phase().deaths == ["p3"]


def test_kill_bonus_cleared_after_resolution(make_resolver, act):
    store, resolver = make_resolver("werewolf", "villager", "villager", "villager")
    store.set_werewolf_kill_bonus(1)
    assert resolver.submit_action(act(store, "p1", ActionKind.KILL, "p2", "p3"))
    result = resolver.resolve_night_phase()
    assert result.deaths == ["p2", "p3"]
    assert store.werewolf_kill_bonus() == 0


def test_seer_sees_apparent_team(make_resolver, act):
    store, resolver = make_resolver("seer", "wolf_mimic", "werewolf")
    resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p2"))
    result = resolver.resolve_night_phase()
    assert result.investigations[("p1", "p2")] == Team.VILLAGER

    resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p3"))
    result = resolver.resolve_night_phase()
    assert result.investigations[("p1", "p3")] == Team.WEREWOLF


def test_mystic_seer_learns_exact_role(make_resolver, act):
    store, resolver = make_resolver("mystic_seer", "traitor")
    resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p2"))
    assert resolver.resolve_night_phase().investigations[("p1", "p2")] == "traitor"


def test_aura_seer_checks_special_ability(make_resolver, act):
    store, resolver = make_resolver("aura_seer", "villager", "hunter")
    resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p2"))
    assert resolver.resolve_night_phase().investigations[("p1", "p2")] is False
    resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p3"))
    assert resolver.resolve_night_phase().investigations[("p1", "p3")] is True


def test_psychic_compares_two_players(make_resolver, act):
    store, resolver = make_resolver("psychic", "werewolf", "traitor", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p2", "p3"))
    result = resolver.resolve_night_phase()
    assert result.investigations[("p1", "p2")] is True
    assert result.investigations[("p1", "p3")] is True

    resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p2", "p4"))
    assert resolver.resolve_night_phase().investigations[("p1", "p4")] is False


def test_psychic_with_one_target_is_skipped(make_resolver, act):
    store, resolver = make_resolver("psychic", "werewolf")
    resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p2"))
    result = resolver.resolve_night_phase()
    assert result.investigations == {}
    assert not result.outcomes[0].success


def test_detective_checks_neighbours(make_resolver, act):
    store, resolver = make_resolver("detective", "villager", "villager", "werewolf", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p3"))
    result = resolver.resolve_night_phase()
    assert result.investigations[("p1", "p3")] is True
    assert store.has_used_ability("p1", "investigate")


def test_detective_without_wolf_nearby(make_resolver, act):
    store, resolver = make_resolver("detective", "villager", "villager", "villager", "werewolf")
    resolver.submit_action(act(store, "p1", ActionKind.INVESTIGATE, "p3"))
    assert resolver.resolve_night_phase().investigations[("p1", "p3")] is False


def test_sorceress_detects_seer_variants(make_resolver, act):
    store, resolver = make_resolver("sorceress", "aura_seer", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.DETECT_ROLE, "p2"))
    resolver.submit_action(act(store, "p1", ActionKind.DETECT_ROLE, "p3"))
    result = resolver.resolve_night_phase()
    assert result.investigations[("p1", "p2")] is True
    assert result.investigations[("p1", "p3")] is False


def test_silence_and_exile(make_resolver, act):
    store, resolver = make_resolver("spellcaster", "old_hag", "villager", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.SILENCE, "p3"))
    resolver.submit_action(act(store, "p2", ActionKind.EXILE, "p4"))
    resolver.resolve_night_phase()

    assert store.get("p3").silenced
    assert store.get("p1").last_silenced_id == "p3"
    assert store.get("p4").exiled
    assert not store.get("p4").can_vote

    resolver.night_number = 2
    assert not resolver.can_perform_action("p1", ActionKind.SILENCE, ["p3"])


def test_cult_recruitment(make_resolver, act):
    store, resolver = make_resolver("cult_leader", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.RECRUIT, "p2"))
    resolver.resolve_night_phase()
    assert store.get("p2").cult_member
    assert store.get("p2").team == Team.VILLAGER


def test_ally_recruitment_uses_ability_only(make_resolver, act):
    store, resolver = make_resolver("alpha_wolf", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.RECRUIT, "p2"))
    resolver.resolve_night_phase()
    assert store.has_used_ability("p1", "recruit")
    assert store.get("p2").team == Team.VILLAGER
    assert not store.get("p2").cult_member


def test_lovers_need_two_targets(make_resolver, act):
    store, resolver = make_resolver("cupid", "villager", "werewolf")
    resolver.submit_action(act(store, "p1", ActionKind.CREATE_LOVERS, "p2"))
    result = resolver.resolve_night_phase()
    assert not result.outcomes[0].success
    assert store.get("p2").lover_id is None

    resolver.submit_action(act(store, "p1", ActionKind.CREATE_LOVERS, "p2", "p3"))
    resolver.resolve_night_phase()
    assert store.get("p2").lover_id == "p3"


def test_mark_targets_replaces_prior_list(make_resolver, act):
    store, resolver = make_resolver("bully", "villager", "villager", "villager")
    store.set_marked_targets("p1", ["p4"])
    resolver.submit_action(act(store, "p1", ActionKind.MARK_TARGETS, "p2", "p3"))
    resolver.resolve_night_phase()
    assert store.get("p1").marked_targets == ["p2", "p3"]


def test_copy_role_sets_target(make_resolver, act):
    store, resolver = make_resolver("doppelganger", "seer")
    resolver.submit_action(act(store, "p1", ActionKind.COPY_ROLE, "p2"))
    resolver.resolve_night_phase()
    assert store.get("p1").copy_target_id == "p2"


def test_swap_roles(make_resolver, act):
    store, resolver = make_resolver("troublemaker", "werewolf", "seer")
    resolver.submit_action(act(store, "p1", ActionKind.SWAP_ROLES, "p2", "p3"))
    resolver.resolve_night_phase()
    assert store.get("p2").role_id == "seer"
    assert store.get("p3").team == Team.WEREWOLF
    assert store.has_used_ability("p1", "swap_roles")


def test_gamble_on_werewolf_kills_gambler(make_resolver, act):
    store, resolver = make_resolver("gambler", "werewolf", "villager", night=2)
    resolver.submit_action(act(store, "p1", ActionKind.GAMBLE, "p2"))
    result = resolver.resolve_night_phase()
    assert result.deaths == ["p1"]
    assert store.get("p1").killed_by == "gamble"


def test_gamble_on_villager_kills_target(make_resolver, act):
    store, resolver = make_resolver("gambler", "werewolf", "villager", night=2)
    resolver.submit_action(act(store, "p1", ActionKind.GAMBLE, "p3"))
    assert resolver.resolve_night_phase().deaths == ["p3"]


def test_queue_is_cleared_after_resolution(make_resolver, act):
    store, resolver = make_resolver("werewolf", "villager", "villager")
    resolver.submit_action(act(store, "p1", ActionKind.KILL, "p2"))
    resolver.resolve_night_phase()
    assert resolver.pending_actions == []
    assert resolver.resolve_night_phase().deaths == []


def test_wake_order_follows_call_priority(make_resolver):
    _, resolver = make_resolver("seer", "werewolf", "guard", "cupid", "villager", "gambler")
    assert [p.id for p in resolver.wake_order(1)] == ["p4", "p3", "p2", "p1"]
    assert [p.id for p in resolver.wake_order(2)] == ["p3", "p2", "p1", "p6"]
